import asyncio
import io
import os

from starlette.datastructures import UploadFile

from src.recordfiles.uploads import (
    RequestUploadIntake,
    UploadedFile,
    field_key,
    get_upload_intake,
    stage_uploads,
    use_upload_intake,
)


def test_uploaded_file_extension():
    uploaded_file = UploadedFile(name="Photo.Large.PNG", temp_path="/tmp/x")
    assert uploaded_file.extension == "png"
    assert not uploaded_file.has_error

    assert UploadedFile(name="README", temp_path="/tmp/x").extension == ""


def test_uploaded_file_from_path(make_source_file):
    source = make_source_file("report.txt", "12345")
    uploaded_file = UploadedFile.from_path(source)

    assert uploaded_file.name == "report.txt"
    assert uploaded_file.size == 5
    assert uploaded_file.content_type == "text/plain"
    assert not uploaded_file.is_temporary


def test_field_key():
    assert field_key("file") == "file"
    assert field_key("file", 3) == "file[3]"


def test_stage_uploads(tmp_path):
    items = [
        ("title", "not a file"),
        ("file", UploadFile(file=io.BytesIO(b"image bytes"), filename="Photo.PNG")),
        ("file[1]", UploadFile(file=io.BytesIO(b"second"), filename="second.txt")),
        ("empty", UploadFile(file=io.BytesIO(b""), filename="")),
    ]

    intake = asyncio.run(stage_uploads(items, tmp_path / "staged"))

    assert len(intake) == 3
    uploaded_file = intake.fetch("file")
    assert uploaded_file.name == "Photo.PNG"
    assert uploaded_file.extension == "png"
    assert uploaded_file.size == len(b"image bytes")
    assert uploaded_file.is_temporary
    with open(uploaded_file.temp_path, "rb") as staged:
        assert staged.read() == b"image bytes"

    assert intake.fetch("file", 1).name == "second.txt"
    assert intake.fetch("empty").has_error
    assert intake.fetch("title") is None


def test_close_removes_staged_files(tmp_path, make_source_file):
    items = [("file", UploadFile(file=io.BytesIO(b"data"), filename="data.bin"))]
    intake = asyncio.run(stage_uploads(items, tmp_path / "staged"))
    staged_path = intake.fetch("file").temp_path

    source = make_source_file("kept.txt")
    intake.add("other", UploadedFile.from_path(source))

    intake.close()

    assert not os.path.exists(staged_path)
    assert source.exists(), "Files not owned by the intake must be kept!"
    assert len(intake) == 0


def test_use_upload_intake():
    intake = RequestUploadIntake()
    assert get_upload_intake() is None

    with use_upload_intake(intake) as bound:
        assert bound is intake
        assert get_upload_intake() is intake

    assert get_upload_intake() is None
