import pytest

from tsplbridge.schema import (
    DynamicFontSize,
    Field,
    Padding,
    Position,
    Schema,
    field_from_dict,
    is_color_dark_enough,
    parse_color,
    resolve_field_value,
    schema_from_dict,
)


def test_parse_hex_colors():
    assert parse_color("#ff0000") == (255, 0, 0, 1.0)
    assert parse_color("#000") == (0, 0, 0, 1.0)
    red, green, blue, alpha = parse_color("#00000000")
    assert (red, green, blue, alpha) == (0, 0, 0, 0.0)


def test_parse_functional_colors():
    assert parse_color("rgb(10, 20, 30)") == (10, 20, 30, 1.0)
    assert parse_color("rgba(0,0,0,0.2)") == (0, 0, 0, 0.2)


@pytest.mark.parametrize("bad", ["nonsense", "#12", "#zzzzzz", "rgb(1,2)"])
def test_parse_color_rejects_garbage(bad):
    with pytest.raises(ValueError):
        parse_color(bad)


@pytest.mark.parametrize(
    "color,expected",
    [
        ("", True),
        ("#000000", True),
        ("#ffffff", False),
        ("rgba(0,0,0,0.1)", False),
        ("black", True),
        ("nonsense", True),
    ],
)
def test_is_color_dark_enough(color, expected):
    assert is_color_dark_enough(color) is expected


def test_field_from_dict_reads_template_keys():
    field = field_from_dict(
        {
            "name": "title",
            "type": "text",
            "position": {"x": 1.5, "y": 2},
            "width": 30,
            "height": 8,
            "fontSize": 12,
            "fontColor": "#000000",
            "alignment": "center",
            "verticalAlignment": "middle",
            "fontWeight": "bold",
            "padding": {"top": 1, "left": 2},
            "dynamicFontSize": {"min": 6, "max": 20, "fit": "horizontal"},
            "variables": ["a", "b"],
        }
    )
    assert field.name == "title"
    assert field.position == Position(1.5, 2.0)
    assert field.width == 30.0
    assert field.font_size == 12.0
    assert field.padding == Padding(top=1.0, left=2.0)
    assert field.dynamic_font_size == DynamicFontSize(6.0, 20.0, "horizontal")
    assert field.variables == ["a", "b"]


def test_field_from_dict_padding_list():
    field = field_from_dict({"padding": [1, 2, 3, 4]})
    assert field.padding == Padding(1.0, 2.0, 3.0, 4.0)


def test_schema_from_dict_list_and_mapping_pages():
    schema = schema_from_dict(
        {
            "basePdf": {"width": 100, "height": 50},
            "schemas": [
                [{"name": "a", "type": "text"}],
                {"logo": {"type": "image"}},
            ],
        }
    )
    assert (schema.width, schema.height) == (100.0, 50.0)
    assert [f.name for f in schema.pages[0]] == ["a"]
    assert schema.pages[1][0].name == "logo"
    assert schema.has_images() is True


def test_schema_from_dict_needs_dimensions():
    with pytest.raises(ValueError):
        schema_from_dict({"basePdf": "blank", "schemas": []})


def test_has_images_false_without_image_fields():
    schema = Schema(10, 10, [[Field(type="text")], [Field(type="line")]])
    assert schema.has_images() is False


def test_image_source_order():
    field = Field(name="logo", content="fallback.png", variables=["x", "y"])
    assert field.image_source({"logo": "own.png", "y": "var.png"}) == "own.png"
    assert field.image_source({"logo": "", "y": "var.png"}) == "var.png"
    assert field.image_source({}) == "fallback.png"


def test_resolve_field_value_row_and_empty():
    field = Field(name="sku", type="text", content="static")
    assert resolve_field_value(field, {"sku": "ABC"}) == "ABC"
    assert resolve_field_value(field, {}) == ""


def test_resolve_multi_variable_text_template():
    field = Field(
        name="line",
        type="multiVariableText",
        content="Hello {first} {last}",
        variables=["first", "last"],
    )
    assert resolve_field_value(field, {"first": "Ana", "last": "Ruiz"}) == "Hello Ana Ruiz"
    assert resolve_field_value(field, {}) == ""