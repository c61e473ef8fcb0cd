# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import io
import json

import pytest

from helpers import split_multipart
from workerkit.errors import EncodeError, MalformedMultipart, UnreadablePayload
from workerkit.models import (
    KvNamespaceBinding,
    Placement,
    PlacementMode,
    TailConsumer,
    TextBlobBinding,
    UploadRequest,
    WasmModuleBinding,
)
from workerkit.multipart.decoder import decode_script, read_first_part
from workerkit.multipart.encoder import build_metadata, encode_upload
from workerkit.multipart.writer import MultipartWriter


class FailingStream:
    def __init__(self, first: bytes):
        self._first = first
        self.calls = 0

    def read(self, _size: int) -> bytes:
        self.calls += 1
        if self.calls == 1:
            return self._first
        raise OSError("device unplugged")


def _encode(request: UploadRequest, **kwargs) -> tuple[bytes, MultipartWriter]:
    sink = io.BytesIO()
    mpw = MultipartWriter(sink, **kwargs)
    encode_upload(request, mpw)
    return sink.getvalue(), mpw


def test_writer_layout_with_fixed_boundary():
    sink = io.BytesIO()
    mpw = MultipartWriter(sink, boundary="xyz")
    mpw.create_part("metadata", "application/json")
    mpw.write("{}")
    mpw.create_part("worker.mjs", "application/javascript+module", filename="worker.mjs")
    mpw.copy_from(b"export default {}")
    mpw.close()
    mpw.close()

    assert sink.getvalue() == (
        b"--xyz\r\n"
        b'Content-Disposition: form-data; name="metadata"\r\n'
        b"Content-Type: application/json\r\n\r\n"
        b"{}"
        b"\r\n--xyz\r\n"
        b'Content-Disposition: form-data; name="worker.mjs"; filename="worker.mjs"\r\n'
        b"Content-Type: application/javascript+module\r\n\r\n"
        b"export default {}"
        b"\r\n--xyz--\r\n"
    )
    assert mpw.content_type == "multipart/form-data; boundary=xyz"
    assert mpw.part_names == ["metadata", "worker.mjs"]
    assert mpw.bytes_written == len(sink.getvalue())


def test_writer_copies_streams_in_chunks():
    reads = []

    class Recorder(io.BytesIO):
        def read(self, size=-1):
            reads.append(size)
            return super().read(size)

    sink = io.BytesIO()
    mpw = MultipartWriter(sink, boundary="b", chunk_size=4)
    mpw.create_part("script", "application/javascript")
    assert mpw.copy_from(Recorder(b"0123456789")) == 10
    assert reads == [4, 4, 4, 4]


def test_writer_rejects_unreadable_source():
    mpw = MultipartWriter(io.BytesIO(), boundary="b")
    mpw.create_part("script", "application/javascript")
    with pytest.raises(UnreadablePayload):
        mpw.copy_from(12345)


def test_module_upload_with_kv_binding():
    request = UploadRequest(
        script_name="my-worker",
        script="export default {}",
        module=True,
        bindings={"KV": KvNamespaceBinding(namespace_id="abc")},
    )
    body, mpw = _encode(request)
    parts = split_multipart(body, mpw.content_type)

    assert [part["name"] for part in parts] == ["metadata", "worker.mjs"]
    metadata = json.loads(parts[0]["content"])
    assert metadata["main_module"] == "worker.mjs"
    assert "body_part" not in metadata
    assert metadata["bindings"] == [{"name": "KV", "type": "kv_namespace", "namespace_id": "abc"}]
    assert parts[0]["content_type"] == "application/json"
    assert parts[1]["filename"] == "worker.mjs"
    assert parts[1]["content_type"] == "application/javascript+module"
    assert parts[1]["content"] == b"export default {}"


def test_classic_upload_uses_body_part():
    request = UploadRequest(script_name="w", script="addEventListener('fetch', () => {})", tags=["prod"])
    body, mpw = _encode(request)
    parts = split_multipart(body, mpw.content_type)

    metadata = json.loads(parts[0]["content"])
    assert metadata["body_part"] == "script"
    assert metadata["bindings"] == []
    assert metadata["tags"] == ["prod"]
    assert parts[1]["name"] == "script"
    assert parts[1]["filename"] is None
    assert parts[1]["content_type"] == "application/javascript"


def test_binding_parts_follow_descriptor_order():
    request = UploadRequest(
        script_name="w",
        script="export default {}",
        module=True,
        bindings={
            "WASM": WasmModuleBinding(module=io.BytesIO(b"\0asm\x01\0\0\0")),
            "KV": KvNamespaceBinding(namespace_id="abc"),
            "BLOB": TextBlobBinding(text="some text"),
        },
    )
    body, mpw = _encode(request)
    parts = split_multipart(body, mpw.content_type)
    metadata = json.loads(parts[0]["content"])

    referenced = [descriptor["part"] for descriptor in metadata["bindings"] if "part" in descriptor]
    assert len(referenced) == 2
    assert len(set(referenced)) == 2
    assert [part["name"] for part in parts[2:]] == referenced
    assert parts[2]["content_type"] == "application/wasm"
    assert parts[2]["content"] == b"\0asm\x01\0\0\0"
    assert parts[3]["content_type"] == "text/plain"
    assert parts[3]["content"] == b"some text"


def test_metadata_optional_fields():
    request = UploadRequest(
        script_name="w",
        script="x",
        logpush=False,
        tail_consumers=[TailConsumer(service="tail", environment="production")],
        compatibility_date="2024-03-01",
        compatibility_flags=["nodejs_compat"],
        placement=Placement(PlacementMode.SMART),
    )
    metadata, writers = build_metadata(request)
    assert writers == []
    assert metadata["logpush"] is False
    assert metadata["tail_consumers"] == [{"service": "tail", "environment": "production"}]
    assert metadata["compatibility_date"] == "2024-03-01"
    assert metadata["compatibility_flags"] == ["nodejs_compat"]
    assert metadata["placement"] == {"mode": "smart"}
    assert metadata["tags"] == []


def test_metadata_omits_unset_fields():
    metadata, _ = build_metadata(UploadRequest(script_name="w", script="x", module=True))
    assert metadata == {"main_module": "worker.mjs", "bindings": [], "tags": []}


def test_unreadable_script_is_encode_error():
    sink = io.BytesIO()
    mpw = MultipartWriter(sink, boundary="b")
    with pytest.raises(EncodeError) as excinfo:
        encode_upload(UploadRequest(script_name="w", script=object(), module=True), mpw)
    assert isinstance(excinfo.value.cause, UnreadablePayload)
    assert sink.getvalue() == b""


def test_failed_source_leaves_message_unterminated():
    sink = io.BytesIO()
    mpw = MultipartWriter(sink, boundary="b")
    request = UploadRequest(script_name="w", script=FailingStream(b"export "), module=True)
    with pytest.raises(EncodeError) as excinfo:
        encode_upload(request, mpw)
    assert isinstance(excinfo.value.cause, OSError)
    assert mpw.closed is False
    assert not sink.getvalue().endswith(b"--b--\r\n")


def test_decode_classic_script():
    decoded = decode_script("text/plain", b"hello")
    assert decoded.script == "hello"
    assert decoded.module is False


def test_decode_missing_content_type_is_classic():
    decoded = decode_script(None, b"addEventListener()")
    assert decoded.module is False


def test_decode_module_script_written_by_writer():
    sink = io.BytesIO()
    mpw = MultipartWriter(sink)
    mpw.create_part("worker.mjs", "application/javascript+module", filename="worker.mjs")
    mpw.copy_from("export default { fetch() { return new Response('ok') } }")
    mpw.create_part("other.mjs", "application/javascript+module", filename="other.mjs")
    mpw.write("export const x = 1")
    mpw.close()

    decoded = decode_script(mpw.content_type, sink.getvalue())
    assert decoded.module is True
    assert decoded.script == "export default { fetch() { return new Response('ok') } }"


def test_decode_accepts_quoted_boundary_and_lf_lines():
    raw = b'--abc\nContent-Disposition: form-data; name="worker.js"\n\nexport default {}\n--abc--\n'
    decoded = decode_script('multipart/form-data; boundary="abc"', raw)
    assert decoded.script == "export default {}"


def test_read_first_part_with_preamble():
    raw = b"preamble\r\n--abc\r\nContent-Type: text/plain\r\n\r\nbody\r\n--abc--\r\n"
    assert read_first_part(raw, "abc") == b"body"


@pytest.mark.parametrize(
    "raw",
    [
        b"no delimiter here",
        b"--abc--\r\n",
        b"--abc",
        b"--abc\r\nContent-Type: text/plain\r\n",
        b"--abc\r\nContent-Type: text/plain\r\n\r\nbody without closing delimiter",
    ],
)
def test_decode_malformed_multipart(raw):
    with pytest.raises(MalformedMultipart):
        decode_script("multipart/form-data; boundary=abc", raw)


def test_decode_multipart_without_boundary():
    with pytest.raises(MalformedMultipart):
        decode_script("multipart/form-data", b"--abc\r\n\r\nx\r\n--abc--")


SCRIPT_TEXTS = [
    "",
    "héllo wörld ✓ 日本語",
    "ends\n",
    "ends\r",
    "ends\r\n",
    "a\r\n--not-a-boundary\r\nb",
    "line\n--",
]


@pytest.mark.parametrize("text", SCRIPT_TEXTS)
def test_classic_script_text_survives_decoding(text):
    decoded = decode_script("application/javascript", text.encode("utf-8"))
    assert decoded.module is False
    assert decoded.script == text


@pytest.mark.parametrize("text", SCRIPT_TEXTS)
def test_module_script_text_survives_multipart_decoding(text):
    sink = io.BytesIO()
    mpw = MultipartWriter(sink)
    mpw.create_part("worker.mjs", "application/javascript+module", filename="worker.mjs")
    mpw.write(text)
    mpw.close()

    decoded = decode_script(mpw.content_type, sink.getvalue())
    assert decoded.module is True
    assert decoded.script == text
