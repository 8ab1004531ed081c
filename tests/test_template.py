import pytest

from src.recordfiles.behaviors.template import (
    ComputedTemplate,
    LiteralTemplate,
    PlaceholderTemplate,
    camel_to_id,
    compile_template,
    resolve_template,
)

from sample_models import FakeRecord


@pytest.fixture
def record():
    return FakeRecord(primary_key=54321, type_name="app.models.ImageFile", name="test_name", group_id=7)


def test_empty_template_resolves_to_no_subdir(record):
    assert resolve_template(None, record) == ""
    assert resolve_template("", record) == ""


def test_primary_key_placeholder(record):
    assert resolve_template("test/{pk}/subdir/template", record) == "test/54321/subdir/template"


def test_caret_placeholders_pick_single_symbols(record):
    assert resolve_template("test/{^pk}/{^^pk}/{pk}", record) == "test/5/4/54321"


def test_caret_beyond_value_length_gives_zero():
    record = FakeRecord(primary_key=7)
    assert resolve_template("{^^pk}/{^pk}", record) == "0/7"


def test_attribute_placeholder(record):
    assert resolve_template("test/{name}/{^group_id}", record) == "test/test_name/7"


def test_unknown_attribute_resolves_to_its_name(record):
    assert resolve_template("{unknownAttr}", record) == "unknownAttr"
    assert resolve_template("{^unknownAttr}", record) == "u"


def test_special_placeholders(record):
    assert resolve_template("{__model__}", record) == "app_models_ImageFile"
    assert resolve_template("{__basemodel__}", record) == "ImageFile"
    assert resolve_template("{__modelid__}", record) == "image-file"
    assert resolve_template("{__file__}", record, file_attribute="avatar") == "avatar"


def test_composite_primary_key_is_joined():
    record = FakeRecord(primary_key=(12, 3))
    assert resolve_template("{pk}", record) == "12_3"


def test_callable_template_receives_record(record):
    template = compile_template(lambda model: f"test/closure/{model.primary_key}")
    assert isinstance(template, ComputedTemplate)
    assert template.resolve(record) == "test/closure/54321"


def test_template_variant_is_dispatched_once():
    assert isinstance(compile_template("static/dir"), LiteralTemplate)
    assert isinstance(compile_template("{pk}"), PlaceholderTemplate)
    assert isinstance(compile_template(None), LiteralTemplate)


@pytest.mark.parametrize("name, expected", [
    ("File", "file"),
    ("PostTag", "post-tag"),
    ("TransformExtensionFile", "transform-extension-file"),
    ("HTMLPage", "htmlpage"),
])
def test_camel_to_id(name, expected):
    assert camel_to_id(name) == expected
