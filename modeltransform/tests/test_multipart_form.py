import io
import re

import pytest

from modeltransform.client.http import MultipartEncodingError, MultipartFormWriter
from modeltransform.core.transform import encode_transform_form


def _parse_form(body: bytes, content_type: str):
    boundary = content_type.split("boundary=", 1)[1]
    segments = body.split(b"--" + boundary.encode("ascii"))
    assert segments[0] == b""
    assert segments[-1] == b"--\r\n"
    parts = []
    for seg in segments[1:-1]:
        assert seg.startswith(b"\r\n") and seg.endswith(b"\r\n")
        head, _, content = seg[2:-2].partition(b"\r\n\r\n")
        disp = head.decode("utf-8").split("\r\n")[0]
        name = re.search(r'; name="([^"]*)"', disp).group(1)
        m = re.search(r'; filename="([^"]*)"', disp)
        parts.append((name, m.group(1) if m else None, content))
    return parts


class _BrokenStream(io.RawIOBase):
    def readable(self):
        return True

    def read(self, size=-1):
        raise OSError("disk went away")


def test_transform_form_has_model_then_targetformat():
    form = encode_transform_form(io.BytesIO(b"<definitions/>"), "bpmn", "flow.xml")

    parts = _parse_form(form.body, form.content_type)
    assert [p[0] for p in parts] == ["model", "targetformat"]
    assert parts[0][1] == "flow.xml"
    assert parts[0][2] == b"<definitions/>"
    assert parts[1] == ("targetformat", None, b"bpmn")
    assert form.part_names == ("model", "targetformat")
    assert form.model_bytes == len(b"<definitions/>")


def test_transform_form_appends_sourceformat_only_when_given():
    with_source = encode_transform_form(io.BytesIO(b"x"), "json", "m.yaml", "yaml")
    parts = _parse_form(with_source.body, with_source.content_type)
    assert [p[0] for p in parts] == ["model", "targetformat", "sourceformat"]
    assert parts[2][2] == b"yaml"

    for empty in (None, ""):
        form = encode_transform_form(io.BytesIO(b"x"), "json", "m.yaml", empty)
        assert [p[0] for p in _parse_form(form.body, form.content_type)] == [
            "model",
            "targetformat",
        ]


def test_transform_form_uses_placeholder_filename():
    for name in (None, ""):
        form = encode_transform_form(io.BytesIO(b"x"), "json", name)
        parts = _parse_form(form.body, form.content_type)
        assert parts[0][1] == "model"


def test_model_part_is_byte_exact_for_binary_content():
    payload = bytes(range(256)) * 4096 + b"\r\n--not-a-boundary\r\n"
    form = encode_transform_form(io.BytesIO(payload), "dmn", "blob.bin")

    parts = _parse_form(form.body, form.content_type)
    assert parts[0][2] == payload
    assert form.model_bytes == len(payload)


def test_content_type_carries_the_boundary():
    w = MultipartFormWriter(boundary="fixed-boundary")
    w.add_field("a", "1")
    body = w.close()

    assert w.content_type == "multipart/form-data; boundary=fixed-boundary"
    assert body.startswith(b"--fixed-boundary\r\n")
    assert body.endswith(b"--fixed-boundary--\r\n")


def test_stream_read_failure_reports_copy_stage():
    w = MultipartFormWriter()
    with pytest.raises(MultipartEncodingError) as ei:
        w.add_file("model", "m.bin", _BrokenStream())
    assert ei.value.stage == "copy_file"
    assert w.part_names == []


def test_text_stream_is_rejected_at_copy_stage():
    w = MultipartFormWriter()
    with pytest.raises(MultipartEncodingError) as ei:
        w.add_file("model", "m.txt", io.StringIO("not bytes"))
    assert ei.value.stage == "copy_file"


def test_header_injection_is_rejected():
    w = MultipartFormWriter()
    with pytest.raises(MultipartEncodingError) as ei:
        w.add_file("model", 'evil"; name="x', io.BytesIO(b""))
    assert ei.value.stage == "create_part"

    with pytest.raises(MultipartEncodingError) as ei:
        w.add_field("target\r\nformat", "json")
    assert ei.value.stage == "write_field"


def test_writer_cannot_be_reused_after_close():
    w = MultipartFormWriter()
    w.add_field("targetformat", "json")
    w.close()

    with pytest.raises(MultipartEncodingError) as ei:
        w.add_field("sourceformat", "yaml")
    assert ei.value.stage == "write_field"

    with pytest.raises(MultipartEncodingError) as ei:
        w.close()
    assert ei.value.stage == "close"


def test_empty_form_cannot_be_closed():
    with pytest.raises(MultipartEncodingError) as ei:
        MultipartFormWriter().close()
    assert ei.value.stage == "close"
