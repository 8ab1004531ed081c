import os
import shutil

import pytest

from src.recordfiles.behaviors import Transformation, TransformFileBehavior, parse_transformations
from src.recordfiles.exceptions import ConfigurationError, StorageError

from sample_models import FakeRecord, TransformExtensionFile, TransformFile


def test_parse_mixed_transformations():
    transformations = parse_transformations(["origin", {"main": (800, 600), "light": None}, Transformation(name="raw")])

    assert [t.name for t in transformations] == ["origin", "main", "light", "raw"]
    assert transformations[0].is_verbatim
    assert transformations[1].settings == (800, 600)
    assert transformations[2].is_verbatim


def test_duplicate_transformation_names_are_rejected():
    with pytest.raises(ConfigurationError):
        parse_transformations(["origin", {"origin": (1, 1)}])


def test_default_transformation_name():
    behavior = TransformFileBehavior(FakeRecord())
    behavior.default_transformation = "test_default_file_transform_name"
    assert behavior.default_transformation == "test_default_file_transform_name"

    behavior.default_transformation = None
    behavior.transformations = ["default_file_transform_name_empty_transform_options"]
    assert behavior.default_transformation == "default_file_transform_name_empty_transform_options"

    behavior.transformations = {"default_file_transform_name_has_transform_options": {}}
    assert behavior.default_transformation == "default_file_transform_name_has_transform_options"


def test_save_file(session, session_factory, make_source_file):
    model = session.get(TransformFile, 1)
    source = make_source_file("test_file.txt")

    assert model.file.save_file(source), "Unable to save file!"
    session.commit()

    bucket = model.file.ensure_file_storage_bucket()
    with session_factory() as other_session:
        refreshed = other_session.get(TransformFile, 1)
        for name in ("default", "custom"):
            file_full_name = model.file.get_file_full_name(name)
            assert bucket.exists(file_full_name), f"File for transformation name '{name}' does not exist!"
            assert file_full_name.endswith(f"1_{name}_1.txt")
            assert refreshed.file.get_file_full_name(name) == file_full_name


def test_save_file_with_empty_transformations(session, make_source_file):
    model = session.get(TransformFile, 1)
    model.file.transformations = []

    with pytest.raises(ConfigurationError):
        model.file.save_file(make_source_file("test_file.txt"))
    assert model.file_version is None


def test_use_default_file_url(session):
    model = session.get(TransformFile, 1)

    model.file.default_file_url = {}
    assert model.file.get_file_url()
    assert model.file.get_file_url("custom")

    model.file.default_file_url = "http://test/default/file/web/src"
    assert model.file.get_file_url() == "http://test/default/file/web/src"

    urls = {f"test_transform_{i}": f"http://default/{i}" for i in range(1, 4)}
    model.file.default_file_url = urls
    for name, url in urls.items():
        assert model.file.get_file_url(name) == url, "Unable to apply default file URL per transformation!"


def test_existing_file_url_ignores_default(session, make_source_file):
    model = session.get(TransformFile, 1)
    model.file.save_file(make_source_file("test_file.txt"))

    assert model.file.get_file_url("custom") == "http://www.mydomain.com/files/transform-file/0/1/1_custom_1.txt"


def test_default_transformation_is_used_by_default(session, make_source_file):
    model = session.get(TransformFile, 1)
    model.file.save_file(make_source_file("test_file.txt"))
    default = model.file.default_transformation

    assert model.file.get_file_self_name(default) == model.file.get_file_self_name()
    assert model.file.get_file_full_name(default) == model.file.get_file_full_name()
    assert model.file.get_file_content(default) == model.file.get_file_content()
    assert model.file.get_file_url(default) == model.file.get_file_url()


def test_transformation_file_extensions(session):
    model = session.get(TransformExtensionFile, 1)
    model.file_version = 1
    model.file_extension = "dat"

    assert model.file.get_file_self_name("origin").endswith(".dat")
    assert model.file.get_file_self_name("text").endswith(".txt")


def test_save_file_with_transformation_extensions(session, make_source_file):
    model = session.get(TransformExtensionFile, 1)

    assert model.file.save_file(make_source_file("test_file.dat"))

    bucket = model.file.ensure_file_storage_bucket()
    for name, extension in (("origin", "dat"), ("text", "txt")):
        file_full_name = model.file.get_file_full_name(name)
        assert bucket.exists(file_full_name)
        assert file_full_name.endswith("." + extension)
    assert model.file_extension == "dat"


def test_regenerate_file_transformations(session, session_factory, make_source_file):
    model = session.get(TransformFile, 1)
    model.file.transformations = ["default"]
    model.file.save_file(make_source_file("test_file.txt", "Regenerated Content"))
    session.commit()

    with session_factory() as other_session:
        refreshed = other_session.get(TransformFile, 1)
        assert not refreshed.file.file_exists("custom")

        assert refreshed.file.regenerate_file_transformations("default")
        assert refreshed.file.file_exists("custom")
        assert refreshed.file.get_file_content("custom") == b"Regenerated Content"
        assert refreshed.file.get_current_file_version() == 2
        other_session.commit()


def test_open_file(session, make_source_file):
    model = session.get(TransformFile, 1)
    model.file.save_file(make_source_file("test_file.txt", "content"))

    for name in ("default", "custom"):
        with model.file.open_file("rb", name) as stream:
            assert stream.read() == b"content"


def test_delete_file(session, make_source_file):
    model = session.get(TransformFile, 1)
    model.file.save_file(make_source_file("test_file.txt"))

    assert model.file.delete_file()
    assert not model.file.file_exists("default")
    assert not model.file.file_exists("custom")
    assert model.file.delete_file(), "Deleting missing files must succeed!"


def failing_second_transform(source_path, destination_path, settings):
    if settings == "fail":
        return False
    shutil.copyfile(source_path, destination_path)
    return True


def test_fanout_attempts_every_transformation(make_source_file):
    record = FakeRecord()
    behavior = TransformFileBehavior(
        record,
        transformations={"first": "copy", "second": "fail", "third": "copy"},
        transform_callback=failing_second_transform,
    )

    assert not behavior.save_file(make_source_file("test_file.txt"))

    assert behavior.last_save_results == {"first": True, "second": False, "third": True}
    assert behavior.file_exists("first")
    assert not behavior.file_exists("second")
    assert behavior.file_exists("third")
    assert record.attributes["file_version"] == 1


def test_fanout_continues_after_storage_error(make_source_file, monkeypatch):
    record = FakeRecord()
    behavior = TransformFileBehavior(record, transformations=["first", "second"])
    bucket = behavior.ensure_file_storage_bucket()
    copy_in = bucket.copy_in

    def flaky_copy_in(local_path, object_key):
        if "_first_" in object_key:
            raise StorageError("connection reset")
        return copy_in(local_path, object_key)

    monkeypatch.setattr(bucket, "copy_in", flaky_copy_in)

    assert not behavior.save_file(make_source_file("test_file.txt"))
    assert behavior.last_save_results == {"first": False, "second": True}


def test_nothing_stored_keeps_attributes(make_source_file):
    record = FakeRecord()
    behavior = TransformFileBehavior(
        record,
        transformations={"only": "fail"},
        transform_callback=failing_second_transform,
    )

    assert not behavior.save_file(make_source_file("test_file.txt"))
    assert record.attributes["file_version"] is None


def test_staging_files_are_removed(settings, make_source_file):
    behavior = TransformFileBehavior(
        FakeRecord(),
        transformations={"copy": "copy"},
        transform_callback=failing_second_transform,
    )
    assert behavior.save_file(make_source_file("test_file.txt"))

    staging = behavior.resolve_transform_temp_path()
    assert staging.startswith(settings.temp_path)
    assert os.listdir(staging) == []


def test_missing_transform_callback(make_source_file):
    behavior = TransformFileBehavior(FakeRecord(), transformations={"main": {"width": 10}})

    with pytest.raises(ConfigurationError):
        behavior.save_file(make_source_file("test_file.txt"))


def raising_transform(source_path, destination_path, settings):
    if settings == "boom":
        raise RuntimeError("converter crashed")
    return failing_second_transform(source_path, destination_path, settings)


def test_fanout_continues_after_transform_exception(make_source_file):
    behavior = TransformFileBehavior(
        FakeRecord(),
        transformations={"first": "boom", "second": "copy"},
        transform_callback=raising_transform,
    )

    assert not behavior.save_file(make_source_file("test_file.txt"))
    assert behavior.last_save_results == {"first": False, "second": True}
    assert behavior.file_exists("second")


@pytest.fixture
def stored_variants(make_source_file):
    """Record with version 1 of an 'origin' and a transformed 'main' file stored."""
    record = FakeRecord()
    behavior = TransformFileBehavior(
        record,
        transformations=["origin", {"main": "copy"}],
        transform_callback=failing_second_transform,
    )
    assert behavior.save_file(make_source_file("test_file.txt"))
    return behavior


def assert_version_one_untouched(behavior):
    bucket = behavior.ensure_file_storage_bucket()
    assert behavior.record.attributes["file_version"] == 1
    for name in ("origin", "main"):
        assert bucket.exists(behavior.get_file_full_name(name)), f"Current '{name}' file was removed!"
        assert not bucket.exists(behavior.get_file_full_name(name, 2, "txt"))


def test_missing_callback_keeps_current_files(stored_variants, make_source_file):
    misconfigured = TransformFileBehavior(
        stored_variants.record,
        transformations=["origin", {"main": "copy"}],
    )

    with pytest.raises(ConfigurationError):
        misconfigured.save_file(make_source_file("new_file.txt"))

    assert_version_one_untouched(stored_variants)


def test_unusable_staging_dir_keeps_current_files(stored_variants, make_source_file):
    stored_variants.temp_path = str(make_source_file("regular_file"))

    with pytest.raises(ConfigurationError):
        stored_variants.save_file(make_source_file("new_file.txt"))

    assert_version_one_untouched(stored_variants)


def test_regenerate_checks_configuration_first(stored_variants):
    stored_variants.transform_callback = None

    with pytest.raises(ConfigurationError):
        stored_variants.regenerate_file_transformations("origin")

    assert_version_one_untouched(stored_variants)
