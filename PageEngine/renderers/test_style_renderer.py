"""
样式引擎的测试用例。

运行测试：
    python -m pytest PageEngine/renderers/test_style_renderer.py -v
"""

import pytest

from PageEngine.renderers.style_renderer import (
    StyleRenderer,
    split_css_items,
    valid_bg_image_url,
    valid_color,
    valid_css_dimension,
)
from PageEngine.utils.config import Settings


class TestSanitizeStyleData:
    """测试样式数据白名单清洗"""

    def setup_method(self):
        """每个测试前初始化"""
        self.renderer = StyleRenderer()

    def test_non_mapping_returns_empty(self):
        """测试样式数据不是对象时返回空"""
        assert self.renderer.sanitize_style_data(None) == {}
        assert self.renderer.sanitize_style_data("margin:0") == {}

    def test_unknown_keys_dropped(self):
        """测试白名单之外的键被丢弃"""
        assert self.renderer.sanitize_style_data({"position": "fixed", "z_index": 9}) == {}

    def test_numeric_clamped_and_rounded(self):
        """测试数值被取整并限制在范围内"""
        result = self.renderer.sanitize_style_data({
            "margin_top": 9999,
            "margin_bottom": -5,
            "padding_left": "12.6",
            "text_size": "abc",
        })
        assert result == {"margin_top": 500, "margin_bottom": 0, "padding_left": 13}

    def test_shadow_offsets_allow_negative(self):
        """测试阴影偏移允许负值"""
        result = self.renderer.sanitize_style_data({"shadow_x": -900, "shadow_y": -4})
        assert result == {"shadow_x": -500, "shadow_y": -4}

    def test_custom_limits(self):
        """测试配置的数值上限"""
        renderer = StyleRenderer(Settings(STYLE_NUMERIC_MAX=100))
        assert renderer.sanitize_style_data({"margin_top": 250}) == {"margin_top": 100}

    def test_opacity(self):
        """测试透明度的取值处理"""
        assert self.renderer.sanitize_style_data({"opacity": 1.7}) == {"opacity": 1.0}
        assert self.renderer.sanitize_style_data({"opacity": "0.456"}) == {"opacity": 0.46}

    def test_colors(self):
        """测试颜色值校验"""
        result = self.renderer.sanitize_style_data({
            "bg_color": "#fff",
            "text_color": "red; background:url(x)",
            "border_color": "rgb(300,0,0)",
            "shadow_color": "rgba(0, 0, 0, 0.5)",
        })
        assert result == {"bg_color": "#fff", "shadow_color": "rgba(0, 0, 0, 0.5)"}

    def test_select_options(self):
        """测试枚举选项校验"""
        result = self.renderer.sanitize_style_data({
            "text_align": "center",
            "text_weight": 700,
            "border_style": "groove",
            "bg_size": "cover",
        })
        assert result == {"text_align": "center", "text_weight": "700", "bg_size": "cover"}

    def test_units(self):
        """测试单位白名单"""
        result = self.renderer.sanitize_style_data({"margin_unit": "rem", "padding_unit": "pt"})
        assert result == {"margin_unit": "rem"}

    def test_bg_image(self):
        """测试背景图地址校验"""
        assert self.renderer.sanitize_style_data({"bg_image": "/uploads/hero.jpg"}) == {"bg_image": "/uploads/hero.jpg"}
        assert self.renderer.sanitize_style_data({"bg_image": "javascript:alert(1)"}) == {}
        assert self.renderer.sanitize_style_data({"bg_image": "x.png) ; background:red"}) == {}

    def test_dimensions(self):
        """测试max_width等尺寸属性"""
        result = self.renderer.sanitize_style_data({"max_width": "800px", "min_height": "100px;color:red"})
        assert result == {"max_width": "800px"}

    def test_camel_case_keys(self):
        """测试camelCase键转换为snake_case"""
        result = self.renderer.sanitize_style_data({"customCss": "body{color:red}", "marginTop": 8})
        assert result == {"custom_css": "body{color:red}", "margin_top": 8}

    def test_snake_case_wins(self):
        """测试两种写法同时存在时snake_case优先"""
        result = self.renderer.sanitize_style_data({"marginTop": 8, "margin_top": 4})
        assert result == {"margin_top": 4}

    def test_flags(self):
        """测试开关字段转换为布尔值"""
        assert self.renderer.sanitize_style_data({"margin_linked": 1}) == {"margin_linked": True}

    def test_idempotent(self):
        """测试清洗结果再次清洗保持不变"""
        raw = {
            "margin_top": 12.4,
            "shadow_x": -3,
            "opacity": "0.333",
            "text_color": "#333",
            "text_weight": 600,
            "bg_image": "/img/a.png",
            "max_width": "960px",
            "custom_class": "hero  dark 1bad",
            "customCss": "/* x */ .a{color:red} @media (max-width:10px){.b{color:blue}} color:red;",
            "padding_linked": 0,
        }
        once = self.renderer.sanitize_style_data(raw)
        assert self.renderer.sanitize_style_data(once) == once
        assert once["custom_class"] == "hero dark"


class TestInlineStyle:
    """测试内联样式生成"""

    def setup_method(self):
        """每个测试前初始化"""
        self.renderer = StyleRenderer()

    def test_sorted_output(self):
        """测试内联样式按属性名排序"""
        style = self.renderer.build_inline_style({"margin_top": 10, "text_color": "#333", "text_size": 18})
        assert style == "color: #333; font-size: 18px; margin-top: 10px"

    def test_margin_unit(self):
        """测试外边距单位"""
        assert self.renderer.build_inline_style({"margin_top": 2, "margin_unit": "rem"}) == "margin-top: 2rem"

    def test_shadow(self):
        """测试阴影属性"""
        style = self.renderer.build_inline_style({"shadow_x": 2, "shadow_y": 4, "shadow_blur": 6, "shadow_color": "#000"})
        assert style == "box-shadow: 2px 4px 6px 0px #000"

    def test_shadow_requires_color(self):
        """测试缺少阴影颜色时不输出阴影"""
        assert self.renderer.build_inline_style({"shadow_x": 2, "shadow_y": 4}) == ""

    def test_opacity(self):
        """测试透明度的取值处理"""
        assert self.renderer.build_inline_style({"opacity": 0.5}) == "opacity: 0.5"
        assert self.renderer.build_inline_style({"opacity": 1.0}) == ""

    def test_background_is_not_inline(self):
        """测试背景与内边距不进入内联样式"""
        assert self.renderer.build_inline_style({"bg_color": "#fff", "padding_top": 10}) == ""

    def test_dimensions(self):
        """测试max_width等尺寸属性"""
        assert self.renderer.build_inline_style({"max_width": "800px"}) == "max-width: 800px"

    def test_empty(self):
        """测试空样式数据"""
        assert self.renderer.build_inline_style({}) == ""
        assert self.renderer.build_inline_style(None) == ""


class TestCascadeAndLayoutStyles:
    """测试不可继承属性与页面级样式"""

    def setup_method(self):
        """每个测试前初始化"""
        self.renderer = StyleRenderer()

    def test_cascade_rule(self):
        """测试层叠规则作用于容器与直接子元素"""
        css = self.renderer.build_cascade_styles({"bg_color": "#fff", "padding_top": 10}, ".s")
        assert css == ".s, .s > * { background-color: #fff; padding-top: 10px; }\n"

    def test_border_requires_all_parts(self):
        """测试边框需要宽度/样式/颜色齐全"""
        full = self.renderer.build_cascade_styles(
            {"border_width": 2, "border_style": "solid", "border_color": "#ccc"}, ".s"
        )
        assert "border: 2px solid #ccc" in full
        assert self.renderer.build_cascade_styles({"border_width": 2, "border_style": "solid"}, ".s") == ""

    def test_background_image(self):
        """测试背景图层叠规则"""
        css = self.renderer.build_cascade_styles({"bg_image": "/a.png", "bg_size": "cover"}, ".s")
        assert "background-image: url('/a.png')" in css
        assert "background-size: cover" in css

    def test_empty_cascade(self):
        """测试没有不可继承属性时不输出规则"""
        assert self.renderer.build_cascade_styles({"margin_top": 10}, ".s") == ""

    def test_page_layout_css(self):
        """测试页面级样式目标与自定义CSS"""
        css = self.renderer.build_page_layout_css({
            "container": {"bg_color": "#fff", "custom_css": "h1{color:red}"},
            "unknown": {"bg_color": "#000"},
        })
        assert css == (
            ".container { background-color: #fff; }\n"
            "/* Page Layout Custom CSS: container */\n"
            ".container h1{color:red}\n"
        )

    def test_page_layout_mixes_inline_props(self):
        """测试页面级目标同时输出可继承属性"""
        css = self.renderer.build_page_layout_css({"page_body": {"text_color": "#222", "padding_top": 20}})
        assert css == ".page-body { color: #222; padding-top: 20px; }\n"

    def test_page_layout_non_mapping(self):
        """测试页面样式不是对象时返回空"""
        assert self.renderer.build_page_layout_css(None) == ""


class TestCustomCss:
    """测试自定义CSS清洗与作用域"""

    def setup_method(self):
        """每个测试前初始化"""
        self.renderer = StyleRenderer()

    def test_comments_removed(self):
        """测试注释被移除"""
        assert self.renderer.sanitize_custom_css("/* hi */.a{color:red}") == ".a{color:red}"
        assert self.renderer.sanitize_custom_css(".a{color:red}/* unclosed") == ".a{color:red}"

    def test_import_dropped(self):
        """测试@import被丢弃"""
        assert self.renderer.sanitize_custom_css("@import url(x.css); .a{color:red}") == ".a{color:red}"

    @pytest.mark.parametrize("bad", [
        ".a{background:url(javascript:alert(1))}",
        ".a{width:expression(alert(1))}",
        ".a{behavior:url(x.htc)}",
        ".a{-moz-binding:url(x.xml)}",
        ".a{background:url(data:text/html;base64,AAA)}",
        ".a{content:'\\3c'}",
    ])
    def test_dangerous_rules_dropped(self, bad):
        """测试含危险构造的规则被整条丢弃"""
        assert self.renderer.sanitize_custom_css(f"{bad} .b{{color:red}}") == ".b{color:red}"

    def test_style_breakout_dropped(self):
        """测试闭合style标签的尝试被丢弃"""
        css = self.renderer.sanitize_custom_css(".a{color:red}</style><script>alert(1)</script>")
        assert css == ".a{color:red}"
        assert "<" not in css

    def test_data_image_allowed(self):
        """测试允许data:image地址"""
        css = ".a{background:url(data:image/png;base64,AAA)}"
        assert self.renderer.sanitize_custom_css(css) == css

    def test_media_sanitized_recursively(self):
        """测试@media内部递归清洗"""
        css = "@media (max-width:600px){.a{color:red}.b{background:url(javascript:x)}}"
        assert self.renderer.sanitize_custom_css(css) == "@media (max-width:600px){.a{color:red}}"

    def test_unclosed_rule_dropped(self):
        """测试未闭合的规则被丢弃"""
        assert self.renderer.sanitize_custom_css(".a{color:red}.b{color:blue") == ".a{color:red}"

    def test_stray_brace_dropped(self):
        """测试多余的右花括号被丢弃"""
        assert self.renderer.sanitize_custom_css("}.a{color:red}") == ".a{color:red}"

    def test_truncation(self):
        """测试超长的自定义CSS被截断"""
        renderer = StyleRenderer(Settings(CUSTOM_CSS_MAX_LENGTH=13))
        assert renderer.sanitize_custom_css(".a{color:red}.b{color:blue}") == ".a{color:red}"

    def test_sanitize_idempotent(self):
        """测试清洗结果再次清洗保持不变"""
        raw = "/*c*/ .a{color:red} @import 'x'; @media print{.b{color:blue}} color:red;"
        once = self.renderer.sanitize_custom_css(raw)
        assert self.renderer.sanitize_custom_css(once) == once

    def test_scope_rule(self):
        """测试规则选择器加上作用域前缀"""
        assert self.renderer.scope_custom_css(".a{color:red}", ".scope") == ".scope .a{color:red}"

    def test_scope_bare_declarations(self):
        """测试顶层声明包裹进作用域规则"""
        assert self.renderer.scope_custom_css("color:red;", ".scope") == ".scope{color:red;}"
        assert self.renderer.scope_custom_css("color:red", ".scope") == ".scope{color:red}"

    def test_scope_mixed(self):
        """测试规则与顶层声明混合"""
        css = self.renderer.scope_custom_css(".a{color:red} color:blue;", ".scope")
        assert css == ".scope .a{color:red}\n.scope{color:blue;}"

    def test_scope_selector_list(self):
        """测试选择器列表逐个加前缀"""
        css = self.renderer.scope_custom_css(".a, .b:hover{x:y}", ".scope")
        assert css == ".scope .a, .scope .b:hover{x:y}"

    def test_scope_keeps_functional_pseudo_together(self):
        """测试函数伪类内的逗号不切分"""
        css = self.renderer.scope_custom_css(":is(.a, .b){color:red}", ".scope")
        assert css == ".scope :is(.a, .b){color:red}"

    def test_scope_media(self):
        """测试@media内部的规则加前缀"""
        css = self.renderer.scope_custom_css("@media (max-width: 600px){.a{color:red}}", ".scope")
        assert css == "@media (max-width: 600px){.scope .a{color:red}}"

    def test_scope_keyframes_untouched(self):
        """测试@keyframes内部不加前缀"""
        css = "@keyframes spin{from{opacity:0}to{opacity:1}}"
        assert self.renderer.scope_custom_css(css, ".scope") == css

    def test_scope_body_selector(self):
        """测试body选择器被限定在作用域内"""
        assert self.renderer.scope_custom_css("body{color:red}", ".s") == ".s body{color:red}"

    def test_scope_already_scoped(self):
        """测试已在作用域内的后代选择器不重复加前缀"""
        assert self.renderer.scope_custom_css(".scope .a{x:y}", ".scope") == ".scope .a{x:y}"

    def test_scope_itself_and_child_kept(self):
        """测试作用域本身与子选择器不重复加前缀"""
        assert self.renderer.scope_custom_css(".scope{x:y}", ".scope") == ".scope{x:y}"
        assert self.renderer.scope_custom_css(".scope > .a{x:y}", ".scope") == ".scope > .a{x:y}"

    def test_scope_sibling_selectors_prefixed(self):
        """测试以作用域开头的兄弟选择器仍被加前缀，不能命中实例之外的元素"""
        css = self.renderer.scope_custom_css(".scope + p{color:red} .scope ~ div{color:red}", ".scope")
        assert css == ".scope .scope + p{color:red}\n.scope .scope ~ div{color:red}"

    def test_scope_prefix_lookalike_prefixed(self):
        """测试仅前缀相同的class不被当作已在作用域内"""
        assert self.renderer.scope_custom_css(".scopex .a{color:red}", ".scope") == ".scope .scopex .a{color:red}"

    def test_scope_empty(self):
        """测试空CSS"""
        assert self.renderer.scope_custom_css("   ", ".s") == ""


class TestCustomClasses:
    """测试自定义class校验"""

    def setup_method(self):
        """每个测试前初始化"""
        self.renderer = StyleRenderer()

    def test_string(self):
        """测试字符串形式的class列表"""
        assert self.renderer.get_custom_classes("hero  dark 1bad -2x ok_1 hero <b>") == ["hero", "dark", "ok_1"]

    def test_list(self):
        """测试数组形式的class列表"""
        assert self.renderer.get_custom_classes(["a", 3, " b "]) == ["a", "b"]

    def test_mapping(self):
        """测试从样式数据中读取class"""
        assert self.renderer.get_custom_classes({"customClass": "x -y"}) == ["x", "-y"]

    def test_other(self):
        """测试其他类型返回空列表"""
        assert self.renderer.get_custom_classes(None) == []
        assert self.renderer.get_custom_classes(12) == []


class TestValueValidators:
    """测试颜色/尺寸/背景图校验函数"""

    @pytest.mark.parametrize("color,expected", [
        ("#fff", True),
        ("#ffff", True),
        ("#a1b2c3", True),
        ("#a1b2c3d4", True),
        ("#ggg", False),
        ("rgb(0, 128, 255)", True),
        ("rgba(0,0,0,0.5)", True),
        ("rgba(0,0,0,1.5)", False),
        ("rgb(256,0,0)", False),
        ("red", False),
        ("", False),
    ])
    def test_valid_color(self, color, expected):
        """测试颜色校验"""
        assert valid_color(color) is expected

    def test_valid_css_dimension(self):
        """测试CSS尺寸校验"""
        assert valid_css_dimension("100px")
        assert valid_css_dimension("50%")
        assert valid_css_dimension("auto")
        assert not valid_css_dimension("100")
        assert not valid_css_dimension("calc(100% - 2px)")

    def test_valid_bg_image_url(self):
        """测试背景图地址校验函数"""
        assert valid_bg_image_url("https://cdn.example.com/a.png")
        assert valid_bg_image_url("data:image/png;base64,AAA")
        assert not valid_bg_image_url("data:text/html,hi")
        assert not valid_bg_image_url("javascript:alert(1)")

    def test_split_css_items(self):
        """测试CSS切分为规则/语句/尾部"""
        items = split_css_items(".a{b:c} d:e; f:g")
        assert items == [("block", ".a{b:c}"), ("statement", "d:e;"), ("trailing", "f:g")]

    def test_split_ignores_braces_in_quotes(self):
        """测试引号内的花括号不参与切分"""
        items = split_css_items(".a::after{content:'}'}")
        assert items == [("block", ".a::after{content:'}'}")]

    def test_split_open(self):
        """测试未闭合的规则"""
        assert split_css_items(".a{color:red") == [("open", ".a{color:red")]
