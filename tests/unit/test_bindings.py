# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

import io

import pytest

from workerkit.errors import InvalidBindingKind
from workerkit.models import (
    BINDING_TYPES,
    D1Binding,
    DispatchNamespaceBinding,
    DurableObjectBinding,
    InheritBinding,
    KvNamespaceBinding,
    SecretTextBinding,
    ServiceBinding,
    TextBlobBinding,
    WasmModuleBinding,
    binding_from_mapping,
)
from workerkit.models.bindings import serialize_binding


def test_kv_namespace_descriptor():
    descriptor, writer = serialize_binding("KV", KvNamespaceBinding(namespace_id="abc"))
    assert descriptor == {"name": "KV", "type": "kv_namespace", "namespace_id": "abc"}
    assert writer is None


def test_optional_fields_are_omitted():
    descriptor, _ = serialize_binding("PREV", InheritBinding())
    assert descriptor == {"name": "PREV", "type": "inherit"}

    descriptor, _ = serialize_binding("DO", DurableObjectBinding(class_name="Counter"))
    assert descriptor == {"name": "DO", "type": "durable_object_namespace", "class_name": "Counter"}

    descriptor, _ = serialize_binding("API", ServiceBinding(service="api", environment="production"))
    assert descriptor == {"name": "API", "type": "service", "service": "api", "environment": "production"}


def test_d1_uses_id_field():
    descriptor, _ = serialize_binding("DB", D1Binding(database_id="db-1"))
    assert descriptor == {"name": "DB", "type": "d1", "id": "db-1"}


def test_dispatch_namespace_outbound():
    outbound = {"worker": {"service": "outbound-worker"}, "params": [{"name": "url"}]}
    descriptor, _ = serialize_binding("DISPATCH", DispatchNamespaceBinding(namespace="ns", outbound=outbound))
    assert descriptor["namespace"] == "ns"
    assert descriptor["outbound"] == outbound


def test_secret_text_hidden_from_repr():
    binding = SecretTextBinding(text="hunter2")
    assert "hunter2" not in repr(binding)
    descriptor, _ = serialize_binding("TOKEN", binding)
    assert descriptor["text"] == "hunter2"


def test_body_part_bindings_reference_fresh_part(monkeypatch):
    names = iter(["part-one", "part-two"])
    monkeypatch.setattr("workerkit.models.bindings.secrets.token_hex", lambda _n: next(names))

    wasm_descriptor, wasm_writer = serialize_binding("WASM", WasmModuleBinding(module=io.BytesIO(b"\0asm")))
    text_descriptor, text_writer = serialize_binding("BLOB", TextBlobBinding(text="hello"))

    assert wasm_descriptor == {"name": "WASM", "type": "wasm_module", "part": "part-one"}
    assert text_descriptor == {"name": "BLOB", "type": "text_blob", "part": "part-two"}
    assert callable(wasm_writer)
    assert callable(text_writer)


def test_binding_from_mapping_aliases():
    assert binding_from_mapping({"kind": "kv_namespace", "id": "abc"}) == KvNamespaceBinding(namespace_id="abc")
    assert binding_from_mapping({"type": "d1", "id": "db"}) == D1Binding(database_id="db")
    assert binding_from_mapping({"kind": "durable_object_namespace", "class": "C", "script": "s"}) == DurableObjectBinding(
        class_name="C", script_name="s"
    )


def test_binding_from_mapping_unknown_kind():
    with pytest.raises(InvalidBindingKind) as excinfo:
        binding_from_mapping({"kind": "carrier_pigeon"})
    assert excinfo.value.stage.value == "encode"


def test_binding_from_mapping_bad_fields():
    with pytest.raises(InvalidBindingKind):
        binding_from_mapping({"kind": "kv_namespace", "colour": "blue"})


def test_serialize_rejects_foreign_objects():
    with pytest.raises(InvalidBindingKind):
        serialize_binding("X", {"type": "kv_namespace"})


def test_all_kinds_registered():
    assert set(BINDING_TYPES) == {
        "inherit",
        "kv_namespace",
        "durable_object_namespace",
        "wasm_module",
        "text_blob",
        "plain_text",
        "secret_text",
        "service",
        "analytics_engine",
        "queue",
        "r2_bucket",
        "d1",
        "dispatch_namespace",
        "mtls_certificate",
    }
