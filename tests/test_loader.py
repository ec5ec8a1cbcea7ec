"""Tests for clientgen.loader module."""

import json

import pytest
import yaml
from conftest import do_thing_document, shop_document

from clientgen.errors import ModelIntegrityError
from clientgen.loader import load_model, model_from_dict
from clientgen.model import (
    BindingStyle,
    Fault,
    ParameterMode,
    RequestWrapper,
    RPCInputMessage,
    RPCOutputMessage,
    TypeKind,
    TypeRef,
)


class TestModelFromDict:
    """Tests for model_from_dict."""

    def test_endpoints_grouped_by_namespace(self):
        model = model_from_dict(do_thing_document())

        assert list(model.endpoint_groups) == ["ns1"]
        (endpoint,) = model.endpoints()
        assert endpoint.qualified_name == "com.acme.Svc"
        assert endpoint.simple_name == "Svc"
        assert endpoint.package == "com.acme"
        assert endpoint.service == "SvcService"

    def test_wrapper_children(self):
        (endpoint,) = model_from_dict(do_thing_document()).endpoints()
        request, response = endpoint.operations[0].messages

        assert isinstance(request, RequestWrapper)
        assert [c.element_name for c in request.children] == ["a", "b"]
        assert request.children[0].type == TypeRef("int")
        assert response.bean_name == "com.acme.jaxws.DoThingResponse"

    def test_rpc_messages_are_derived(self):
        """RPC messages take their children from the parameters and result."""
        (endpoint,) = model_from_dict(shop_document()).endpoints()
        lookup = next(op for op in endpoint.operations if op.name == "lookup")
        rpc_in, rpc_out = lookup.messages

        assert lookup.binding.style is BindingStyle.RPC
        assert isinstance(rpc_in, RPCInputMessage)
        assert rpc_in.bean_name == "com.acme.jaxws.Lookup"
        assert [c.element_name for c in rpc_in.children] == ["sku"]
        assert isinstance(rpc_out, RPCOutputMessage)
        assert rpc_out.bean_name == "com.acme.jaxws.LookupResponse"
        assert rpc_out.element_name == "lookupResponse"
        assert [c.element_name for c in rpc_out.children] == ["item"]

    def test_rpc_output_includes_out_parameters(self):
        document = {
            "endpoints": [{
                "qualified_name": "com.acme.Calc",
                "operations": [{
                    "name": "split",
                    "parameters": [
                        {"element_name": "value", "type": "int"},
                        {"element_name": "remainder", "type": "int", "mode": "out"},
                        {"element_name": "carry", "type": "int", "mode": "inout"},
                    ],
                    "messages": [{"kind": "rpc-input"}, {"kind": "rpc-output"}],
                }],
            }]
        }
        (endpoint,) = model_from_dict(document).endpoints()
        operation = endpoint.operations[0]
        rpc_in, rpc_out = operation.messages

        assert operation.parameters[1].mode is ParameterMode.OUT
        assert [c.element_name for c in rpc_in.children] == ["value", "carry"]
        assert [c.element_name for c in rpc_out.children] == ["remainder", "carry"]

    def test_faults(self):
        (endpoint,) = model_from_dict(shop_document()).endpoints()
        cancel = next(op for op in endpoint.operations if op.name == "cancel")
        sold_out, denied = (m for m in cancel.messages if isinstance(m, Fault))

        assert cancel.one_way
        assert sold_out.is_implicit
        assert sold_out.implicit_bean_name == "com.acme.jaxws.SoldOutBean"
        assert [c.element_name for c in sold_out.children] == ["message"]
        assert not denied.is_implicit
        assert denied.explicit_bean.qualified_name == "com.acme.DenialInfo"

    def test_types_and_root_elements(self):
        model = model_from_dict(shop_document())
        types = {t.qualified_name: t for t in model.type_definitions()}

        item = types["com.acme.Item"]
        members = {m.name: m for m in item.members}
        assert members["tags"].type == TypeRef("java.lang.String", collection=True)
        assert members["id"].attribute
        assert types["com.acme.Color"].kind is TypeKind.ENUM
        assert types["com.acme.Color"].values == ("red", "green")
        assert types["com.acme.Base"].abstract
        assert model.find_root_element(item).name == "item"
        assert model.find_root_element(types["com.acme.Color"]) is None

    def test_missing_names_are_kept_as_none(self):
        model = model_from_dict({"types": [{"namespace": "ns"}]})

        (type_definition,) = model.type_definitions()
        assert type_definition.qualified_name is None

    def test_empty(self):
        model = model_from_dict({})

        assert list(model.endpoints()) == []
        assert list(model.type_definitions()) == []

    def test_model_is_read_only(self):
        model = model_from_dict(do_thing_document())

        with pytest.raises(TypeError):
            model.endpoint_groups["other"] = None


class TestLoadModel:
    """Tests for load_model."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "model.yaml"
        path.write_text(yaml.safe_dump(shop_document()))

        model = load_model(path)

        assert len(list(model.type_definitions())) == 4

    def test_json(self, tmp_path):
        path = tmp_path / "model.json"
        path.write_text(json.dumps(do_thing_document()))

        (endpoint,) = load_model(path).endpoints()
        assert endpoint.operations[0].name == "doThing"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "model.yaml"
        path.write_text("")

        assert list(load_model(path).endpoints()) == []

    def test_unreadable(self, tmp_path):
        with pytest.raises(ModelIntegrityError, match="Cannot load service model"):
            load_model(tmp_path / "missing.yaml")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "model.json"
        path.write_text("{")

        with pytest.raises(ModelIntegrityError):
            load_model(path)
