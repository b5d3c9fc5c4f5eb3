"""
设计文档编译器的测试用例。

运行测试：
    python -m pytest PageEngine/renderers/test_pen_converter.py -v
"""

import json

from PageEngine.renderers.pen_converter import (
    PenConverter,
    build_component_registry,
    build_variable_css,
    theme_selector,
    variable_css_name,
)
from PageEngine.renderers.pen_node_renderer import (
    MAX_POLYGON_SIDES,
    infer_frame_tag,
    infer_text_tag,
    polygon_points,
)
from PageEngine.utils.config import Settings

HERO_COMPONENT = {
    "id": "hero",
    "type": "frame",
    "name": "Hero",
    "reusable": True,
    "children": [{"id": "heading", "type": "text", "content": "Welcome", "fontSize": 40}],
}

THEMED_VARIABLES = {
    "name": {
        "type": "color",
        "value": [{"value": "#111"}, {"value": "#222", "theme": {"mode": "dark"}}],
    },
    "space": {"type": "number", "value": 8},
}


def page(*children, **fields):
    node = {"id": "page", "type": "frame", "name": "Home", "layout": "vertical", "children": list(children)}
    node.update(fields)
    return node


def document(*children, variables=None):
    doc = {"version": "1.0", "children": list(children)}
    if variables is not None:
        doc["variables"] = variables
    return doc


class TestComponentReferences:
    """测试组件引用、覆盖与诊断"""

    def setup_method(self):
        """每个测试前初始化"""
        self.converter = PenConverter()

    def test_reference_renders_component(self):
        """测试引用节点渲染组件内容"""
        result = self.converter.convert_document(
            document(HERO_COMPONENT, page({"id": "hero1", "type": "ref", "ref": "hero"}))
        )
        assert result.html == (
            '<div class="pen-page"><div class="pen-hero1"><h1 class="pen-heading">Welcome</h1></div></div>'
        )
        assert ".pen-page{" in result.css
        assert ".pen-page .pen-hero1{" in result.css
        assert ".pen-page .pen-hero1 .pen-heading{box-sizing: border-box; margin: 0;font-size: 40px;}" in result.css

    def test_component_definition_not_rendered(self):
        """测试组件定义本身不在原位渲染"""
        result = self.converter.convert_document(document(HERO_COMPONENT, page()))
        assert "Welcome" not in result.html
        assert 'class="pen-hero"' not in result.html

    def test_descendant_override(self):
        """测试按id覆盖后代节点"""
        ref = {"id": "hero1", "type": "ref", "ref": "hero", "descendants": {"heading": {"content": "Custom Hero Title"}}}
        result = self.converter.convert_document(document(HERO_COMPONENT, page(ref)))
        assert "Custom Hero Title" in result.html
        assert "Welcome" not in result.html

    def test_override_does_not_touch_component(self):
        """测试覆盖不修改组件定义"""
        ref = {"id": "hero1", "type": "ref", "ref": "hero", "descendants": {"heading": {"content": "Changed"}}}
        component = json.loads(json.dumps(HERO_COMPONENT))
        self.converter.convert_document(document(component, page(ref)))
        assert component == HERO_COMPONENT

    def test_type_override_replaces_node(self):
        """测试带type的覆盖整体替换节点"""
        ref = {
            "id": "hero1",
            "type": "ref",
            "ref": "hero",
            "descendants": {"heading": {"id": "heading", "type": "text", "content": "Swapped"}},
        }
        result = self.converter.convert_document(document(HERO_COMPONENT, page(ref)))
        assert '<p class="pen-heading">Swapped</p>' in result.html

    def test_root_property_override(self):
        """测试引用节点的根级字段覆盖组件根"""
        ref = {"id": "hero1", "type": "ref", "ref": "hero", "fill": "#ff0000"}
        result = self.converter.convert_document(document(HERO_COMPONENT, page(ref)))
        rule = next(line for line in result.css.splitlines() if line.startswith(".pen-page .pen-hero1{"))
        assert "background-color: #ff0000;" in rule

    def test_instances_scoped_separately(self):
        """测试同一组件的多个实例分别限定作用域"""
        result = self.converter.convert_document(document(
            HERO_COMPONENT,
            page({"id": "h1", "type": "ref", "ref": "hero"}, {"id": "h2", "type": "reference", "ref": "hero"}),
        ))
        assert ".pen-page .pen-h1 .pen-heading{" in result.css
        assert ".pen-page .pen-h2 .pen-heading{" in result.css

    def test_path_override(self):
        """测试按id路径覆盖后代节点"""
        card = {
            "id": "card",
            "type": "frame",
            "reusable": True,
            "children": [{"id": "body", "type": "frame", "children": [{"id": "title", "type": "text", "content": "Old"}]}],
        }
        ref = {"id": "c1", "type": "ref", "ref": "card", "descendants": {"body/title": {"content": "New"}}}
        result = self.converter.convert_document(document(card, page(ref)))
        assert "New" in result.html
        assert "Old" not in result.html

    def test_path_through_nested_reference(self):
        """测试路径穿过嵌套引用"""
        button = {
            "id": "button",
            "type": "frame",
            "reusable": True,
            "children": [{"id": "label", "type": "text", "content": "Click"}],
        }
        card = {
            "id": "card",
            "type": "frame",
            "reusable": True,
            "children": [{"id": "cta", "type": "ref", "ref": "button"}],
        }
        ref = {"id": "c1", "type": "ref", "ref": "card", "descendants": {"cta/label": {"content": "Buy now"}}}
        result = self.converter.convert_document(document(button, card, page(ref)))
        assert "Buy now" in result.html
        assert "Click" not in result.html

    def test_missing_component(self):
        """测试引用不存在的组件输出诊断块"""
        result = self.converter.convert_document(document(page({"id": "x", "type": "ref", "ref": "nope"})))
        assert (
            '<!-- pen: unresolved reference nope (not-found) -->'
            '<div class="pen-diagnostic" data-pen-error="not-found" data-ref="nope"></div>'
        ) in result.html

    def test_missing_ref_field(self):
        """测试缺少ref字段输出诊断块"""
        result = self.converter.convert_document(document(page({"id": "x", "type": "ref"})))
        assert 'data-pen-error="missing-ref"' in result.html

    def test_cycle_detected(self):
        """测试循环引用被检测"""
        loop = {
            "id": "loop",
            "type": "frame",
            "reusable": True,
            "children": [{"id": "inner", "type": "ref", "ref": "loop"}],
        }
        result = self.converter.convert_document(document(loop, page({"id": "l1", "type": "ref", "ref": "loop"})))
        assert 'data-pen-error="cycle"' in result.html
        assert result.html.count('class="pen-l1"') == 1

    def test_max_depth(self):
        """测试引用深度上限"""
        converter = PenConverter(Settings(MAX_REF_DEPTH=1))
        outer = {"id": "a", "type": "frame", "reusable": True, "children": [{"id": "b1", "type": "ref", "ref": "b"}]}
        inner = {"id": "b", "type": "frame", "reusable": True, "children": [{"id": "t", "type": "text", "content": "deep"}]}
        result = converter.convert_document(document(outer, inner, page({"id": "a1", "type": "ref", "ref": "a"})))
        assert 'data-pen-error="max-depth"' in result.html
        assert "deep" not in result.html

    def test_empty_component_not_registered(self):
        """测试空容器组件不被注册"""
        empty = {"id": "empty", "type": "frame", "reusable": True, "children": []}
        result = self.converter.convert_document(document(empty, page({"id": "e1", "type": "ref", "ref": "empty"})))
        assert 'data-pen-error="not-found"' in result.html


class TestVariables:
    """测试变量与主题输出"""

    def setup_method(self):
        """每个测试前初始化"""
        self.converter = PenConverter()

    def test_variable_blocks(self):
        """测试变量的:root块与主题块"""
        css = self.converter.convert_document(document(variables=THEMED_VARIABLES)).css
        assert ":root{--name:#111;--space:8}" in css
        assert '[data-theme-mode="dark"]{--name:#222}' in css

    def test_override_block_last(self):
        """测试覆盖块位于最后"""
        css = self.converter.convert_document(document(variables=THEMED_VARIABLES), {"name": "#333"}).css
        base = css.index(":root{--name:#111;--space:8}")
        dark = css.index('[data-theme-mode="dark"]{--name:#222}')
        override = css.index(":root{--name:#333}")
        assert base < dark < override

    def test_override_sanitized(self):
        """测试覆盖值被清洗"""
        css = self.converter.convert_document(document(variables=THEMED_VARIABLES), {"name": "red;}</style>"}).css
        assert ":root{--name:red/style}" in css
        assert "</style>" not in css

    def test_missing_default_is_fatal(self):
        """测试主题变量缺少默认值时返回空结果"""
        variables = {"bg": {"type": "color", "value": [{"value": "#000", "theme": {"mode": "dark"}}]}}
        assert self.converter.convert_document(document(page(), variables=variables)).is_empty

    def test_boolean_variable(self):
        """测试布尔变量"""
        assert build_variable_css({"flag": {"type": "boolean", "value": True}}) == ":root{--flag:1}"

    def test_boolean_variable_from_string(self):
        """测试字符串形式的布尔变量按字面含义输出"""
        for text, expected in (("false", "0"), ("0", "0"), ("Off", "0"), ("true", "1"), ("yes", "1")):
            css = build_variable_css({"flag": {"type": "boolean", "value": text}})
            assert css == f":root{{--flag:{expected}}}"

    def test_variable_names(self):
        """测试变量名与主题选择器的清洗"""
        assert variable_css_name("--brand color") == "brandcolor"
        assert theme_selector({"mode": "dark", "density": "compact"}) == (
            '[data-theme-mode="dark"][data-theme-density="compact"]'
        )

    def test_text_substitution(self):
        """测试文字中的变量替换为默认值"""
        variables = {"brand": {"type": "string", "value": "Acme"}}
        result = self.converter.convert_document(document(
            page({"id": "t", "type": "text", "content": "Hello $--brand, $--unknown"}),
            variables=variables,
        ))
        assert "Hello Acme, $--unknown" in result.html

    def test_style_variable_reference(self):
        """测试样式中的变量引用"""
        variables = {"brand-color": {"type": "color", "value": "#123456"}}
        result = self.converter.convert_document(document(
            page({"id": "t", "type": "text", "content": "x", "fill": "$brand-color"}),
            variables=variables,
        ))
        assert "color: var(--brand-color);" in result.css


class TestNodeRendering:
    """测试各类节点的输出"""

    def setup_method(self):
        """每个测试前初始化"""
        self.converter = PenConverter()

    def convert(self, *children, **fields):
        return self.converter.convert_document(document(page(*children, **fields)))

    def test_base_rule(self):
        """测试基础box-sizing规则"""
        assert '[class^="pen-"]{box-sizing:border-box}' in self.convert().css

    def test_skipped_nodes(self):
        """测试停用、注释与未知类型的节点不输出"""
        result = self.convert(
            {"id": "t", "type": "text", "content": "Hidden", "enabled": False},
            {"id": "n", "type": "note", "content": "design note"},
            {"id": "v", "type": "video"},
        )
        assert result.html == '<div class="pen-page"></div>'

    def test_text_escaped(self):
        """测试文字内容被转义"""
        html = self.convert({"id": "t", "type": "text", "content": "<script>alert(1)</script>"}).html
        assert "&lt;script&gt;" in html
        assert "<script>" not in html

    def test_raw_text(self):
        """测试raw文字原样输出"""
        html = self.convert({"id": "t", "type": "text", "content": "<b>x</b>", "raw": True}).html
        assert '<p class="pen-t"><b>x</b></p>' in html

    def test_newlines(self):
        """测试换行转换为br"""
        assert "a<br>\nb" in self.convert({"id": "t", "type": "text", "content": "a\nb"}).html

    def test_text_link(self):
        """测试带href的文字输出为链接"""
        html = self.convert({"id": "t", "type": "text", "content": "Go", "href": "/x"}).html
        assert '<a href="/x" class="pen-t">Go</a>' in html

    def test_text_runs(self):
        """测试分段文字"""
        html = self.convert({"id": "t", "type": "text", "content": [{"content": "Bold", "fontWeight": "700"}, " plain"]}).html
        assert '<span style="font-weight: 700;">Bold</span> plain' in html

    def test_semantic_frame(self):
        """测试按名称推断语义标签"""
        html = self.convert({"id": "f", "type": "frame", "name": "Site Footer", "children": []}).html
        assert '<footer class="pen-f"></footer>' in html

    def test_absolute_children(self):
        """测试无布局父节点下的绝对定位"""
        css = self.convert({"id": "r", "type": "rectangle", "x": 10, "y": 20, "width": 50, "height": 50}, layout="none").css
        assert ".pen-page{box-sizing: border-box;position: relative;}" in css
        assert "width: 50px;height: 50px;position: absolute;left: 10px;top: 20px;" in css

    def test_page_root_not_absolute(self):
        """测试页面根不使用绝对定位"""
        css = self.convert(x=100, y=40).css
        root_rule = next(line for line in css.splitlines() if line.startswith(".pen-page{"))
        assert "position: absolute" not in root_rule

    def test_ellipse_and_line(self):
        """测试椭圆与直线"""
        result = self.convert(
            {"id": "e", "type": "ellipse", "width": 10, "height": 10},
            {"id": "ln", "type": "line", "stroke": {"thickness": 2, "fill": "#cccccc"}},
        )
        assert '<div class="pen-e"></div>' in result.html
        assert '<hr class="pen-ln">' in result.html
        assert "border-radius: 50%;" in result.css
        assert "border-top: 2px solid #cccccc;" in result.css

    def test_path(self):
        """测试路径节点输出svg"""
        html = self.convert({"id": "p", "type": "path", "geometry": "M0 0L10 10", "fill": "#000000", "width": 10, "height": 10}).html
        assert html == (
            '<div class="pen-page"><svg class="pen-p" viewBox="0 0 10 10" width="10" height="10">'
            '<path d="M0 0L10 10" fill="#000000" fill-rule="nonzero" stroke="none"/></svg></div>'
        )

    def test_icon_font_import_first(self):
        """测试图标字体@import位于CSS最前"""
        result = self.convert({"id": "i", "type": "icon_font", "iconFontFamily": "lucide", "iconFontName": "star"})
        assert result.css.startswith(
            "@import url('https://cdn.jsdelivr.net/npm/lucide-static@latest/font/lucide.min.css');\n"
        )
        assert '<i class="pen-i icon-star"></i>' in result.html

    def test_custom_class_prefix(self):
        """测试配置的class前缀"""
        result = PenConverter(Settings(PEN_CLASS_PREFIX="d-")).convert_document(document(page()))
        assert result.html == '<div class="d-page"></div>'
        assert '[class^="d-"]{box-sizing:border-box}' in result.css

    def test_tag_inference(self):
        """测试标签推断"""
        assert infer_frame_tag("Page Header") == "header"
        assert infer_frame_tag("Card") == "div"
        assert infer_text_tag({"fontSize": 32}) == "h1"
        assert infer_text_tag({"fontSize": 24}) == "h2"
        assert infer_text_tag({"fontSize": 16, "fontWeight": "700"}) == "h5"
        assert infer_text_tag({"fontSize": 16, "fontWeight": "400"}) == "p"
        assert infer_text_tag({}) == "p"

    def test_polygon_points(self):
        """测试正多边形顶点"""
        assert polygon_points(4, 100, 100) == "50,0 100,50 50,100 0,50"

    def test_overflowing_numbers_do_not_blank_document(self):
        """测试溢出的数值字符串只影响所在节点，文档其余部分照常输出"""
        result = self.convert(
            {"id": "big", "type": "text", "content": "Big", "fontSize": 20, "fontWeight": "1e400"},
            {"id": "ln", "type": "line", "stroke": {"thickness": "1e400"}},
            {"id": "keep", "type": "text", "content": "Keep"},
        )
        assert not result.is_empty
        assert "Big" in result.html
        assert "Keep" in result.html
        assert "border-top: 1px solid #000000;" in result.css

    def test_polygon_sides_clamped(self):
        """测试多边形边数被限制在3到64之间"""
        many = self.convert({"id": "pg", "type": "polygon", "polygonCount": "1e9", "width": 10, "height": 10}).html
        points = many.split('points="')[1].split('"')[0]
        assert len(points.split()) == MAX_POLYGON_SIDES
        few = self.convert({"id": "pg", "type": "polygon", "polygonCount": 1, "width": 10, "height": 10}).html
        assert len(few.split('points="')[1].split('"')[0].split()) == 3


class TestSources:
    """测试文档来源与容错"""

    def setup_method(self):
        """每个测试前初始化"""
        self.converter = PenConverter()

    def test_invalid_documents(self):
        """测试结构非法的文档返回空结果"""
        assert self.converter.convert_document("nope").is_empty
        assert self.converter.convert_document({"foo": 1}).is_empty
        assert self.converter.convert_document({"children": [], "variables": []}).is_empty

    def test_invalid_json(self):
        """测试非法JSON返回空结果"""
        assert self.converter.convert_json("{not json").is_empty

    def test_convert_json(self):
        """测试从JSON文本编译"""
        result = self.converter.convert_json(json.dumps(document(HERO_COMPONENT, page({"id": "h", "type": "ref", "ref": "hero"}))))
        assert "Welcome" in result.html

    def test_missing_file(self, tmp_path):
        """测试文件缺失返回空结果"""
        assert self.converter.convert_file(tmp_path / "missing.pen").is_empty

    def test_convert_file(self, tmp_path):
        """测试从文件编译"""
        source = tmp_path / "landing.pen"
        source.write_text(json.dumps(document(page({"id": "t", "type": "text", "content": "Hi"}))), encoding="utf-8")
        assert '<p class="pen-t">Hi</p>' in self.converter.convert_file(source).html

    def test_extract_variables(self, tmp_path):
        """测试列出文档变量"""
        source = tmp_path / "theme.pen"
        source.write_text(json.dumps(document(variables=THEMED_VARIABLES)), encoding="utf-8")
        assert self.converter.extract_variables(source) == {
            "name": {"type": "color", "themed": True, "values": {"default": "#111", "mode:dark": "#222"}},
            "space": {"type": "number", "themed": False, "values": {"default": 8}},
        }

    def test_extract_variables_missing_file(self, tmp_path):
        """测试文件缺失时变量表为空"""
        assert self.converter.extract_variables(tmp_path / "missing.pen") == {}


class TestComponentRegistry:
    """测试组件注册表"""

    def test_nested_components(self):
        """测试嵌套的组件也被注册"""
        registry = build_component_registry([
            {"id": "page", "type": "frame", "children": [
                {"id": "btn", "type": "frame", "reusable": True, "children": [{"id": "l", "type": "text"}]},
            ]},
        ])
        assert list(registry) == ["btn"]

    def test_first_duplicate_wins(self):
        """测试重复id保留先出现的定义"""
        first = {"id": "c", "type": "rectangle", "reusable": True, "name": "first"}
        second = {"id": "c", "type": "rectangle", "reusable": True, "name": "second"}
        assert build_component_registry([first, second])["c"]["name"] == "first"

    def test_component_without_id_skipped(self):
        """测试缺少id的组件被跳过"""
        assert build_component_registry([{"type": "rectangle", "reusable": True}]) == {}
