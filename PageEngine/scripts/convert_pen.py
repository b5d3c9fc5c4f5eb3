#!/usr/bin/env python3
"""
设计文档转换工具。

命令行工具，用于：
- 把 .pen 设计文档编译为同名的 .html 与 .css 文件
- 通过 --override 注入变量覆盖值（等同于后台设置）
- 列出文档声明的变量及其主题取值

使用方法:
    python -m PageEngine.scripts.convert_pen landing.pen
    python -m PageEngine.scripts.convert_pen landing.pen --out-dir ./build --override color-primary=#e11d48
    python -m PageEngine.scripts.convert_pen landing.pen --variables
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Dict, List

# 添加项目根目录到路径
project_root = Path(__file__).parent.parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from loguru import logger

from PageEngine.renderers.pen_converter import PenConverter
from PageEngine.utils.config import settings


def parse_overrides(items: List[str]) -> Dict[str, str]:
    """`name=value` 列表 → 字典，格式错误的项忽略并告警。"""
    overrides: Dict[str, str] = {}
    for item in items:
        name, sep, value = item.partition("=")
        if not sep or not name.strip():
            logger.warning(f"忽略格式错误的覆盖项: {item}")
            continue
        overrides[name.strip()] = value.strip()
    return overrides


def main():
    """主函数"""
    parser = argparse.ArgumentParser(
        description="设计文档(.pen)转换工具",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
  %(prog)s landing.pen
  %(prog)s landing.pen --out-dir ./build
  %(prog)s landing.pen --override color-primary=#e11d48 --override radius=8px
  %(prog)s landing.pen --variables
        """,
    )
    parser.add_argument("document", help=".pen 设计文档路径")
    parser.add_argument(
        "-o", "--out-dir",
        default=None,
        help="输出目录（默认与文档同目录）",
    )
    parser.add_argument(
        "--override",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="变量覆盖，可重复",
    )
    parser.add_argument(
        "--variables",
        action="store_true",
        help="只输出变量表(JSON)，不编译",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="显示调试日志",
    )

    args = parser.parse_args()

    logger.remove()
    if args.verbose:
        logger.add(sys.stderr, level="DEBUG")
    else:
        logger.add(sys.stderr, level=settings.LOG_LEVEL)

    source = Path(args.document)
    converter = PenConverter(settings)

    if args.variables:
        variables = converter.extract_variables(source)
        print(json.dumps(variables, ensure_ascii=False, indent=2))
        sys.exit(0 if variables else 1)

    result = converter.convert_file(source, parse_overrides(args.override))
    if result.is_empty:
        logger.error(f"{source} 没有产生任何输出")
        sys.exit(1)

    out_dir = Path(args.out_dir) if args.out_dir else source.parent
    out_dir.mkdir(parents=True, exist_ok=True)
    html_path = out_dir / f"{source.stem}.html"
    css_path = out_dir / f"{source.stem}.css"
    html_path.write_text(result.html, encoding="utf-8")
    css_path.write_text(result.css, encoding="utf-8")
    logger.info(f"已写入 {html_path} 与 {css_path}")
    sys.exit(0)


if __name__ == "__main__":
    main()
