"""Tests for the Plan container: lifecycle, ordering and the executor payload."""

from __future__ import annotations

import json

import pytest

from deployplan import DeclarationError, Plan, declare_module
from deployplan.core.builder import ModuleBuilder
from deployplan.core.contracts.plan import PlanPayload
from deployplan.core.futures import ContractFuture
from deployplan.core.planner.dag import DAG


def _token_and_vault(m: ModuleBuilder) -> dict[str, ContractFuture]:
    owner = m.get_account(0)
    token = m.contract("Token", ["Bank Token", "BNK", owner])
    vault = m.contract("Vault", [token, {"cap": m.get_parameter("cap", 10)}])
    m.call(token, "transferOwnership", [vault])
    return {"token": token, "vault": vault}


def test_plan_requires_a_name() -> None:
    with pytest.raises(DeclarationError):
        Plan("")


def test_seal_is_idempotent() -> None:
    plan = Plan("deploy")
    assert plan.seal() is plan
    assert plan.seal() is plan
    assert plan.sealed is True


def test_seal_during_declaration_fails() -> None:
    plan = Plan("deploy")

    def build(m: ModuleBuilder) -> dict[str, ContractFuture]:
        plan.seal()
        return {}

    with pytest.raises(DeclarationError):
        declare_module("M", build, plan=plan)
    assert plan.sealed is False


def test_views_are_read_only() -> None:
    plan = declare_module("M", _token_and_vault).plan
    with pytest.raises(TypeError):
        plan.futures["x"] = plan.future("M#Token")  # type: ignore[index]
    with pytest.raises(TypeError):
        plan.modules["x"] = plan.modules["M"]  # type: ignore[index]


def test_owns_and_lookup() -> None:
    plan = declare_module("M", _token_and_vault).plan
    token = plan.future("M#Token")
    assert plan.owns(token)
    assert len(plan) == 3
    assert [f.id for f in plan] == ["M#Token", "M#Vault", "M#Token.transferOwnership"]
    with pytest.raises(KeyError):
        plan.future("M#Missing")


def test_execution_order_respects_dependencies() -> None:
    plan = declare_module("M", _token_and_vault).plan
    order = plan.execution_order()
    assert order.index("M#Token") < order.index("M#Vault")
    assert order.index("M#Vault") < order.index("M#Token.transferOwnership")


def test_execution_order_prefers_declaration_order_for_independent_futures() -> None:
    def build(m: ModuleBuilder) -> dict[str, ContractFuture]:
        a = m.contract("A", [])
        b = m.contract("B", [])
        c = m.contract("C", [])
        return {"a": a, "b": b, "c": c}

    plan = declare_module("M", build).plan
    assert plan.execution_order() == ["M#A", "M#B", "M#C"]


def test_explicit_after_moves_a_future_later() -> None:
    def build(m: ModuleBuilder) -> dict[str, ContractFuture]:
        a = m.contract("A", [])
        b = m.contract("B", [])
        c = m.contract("C", [], after=[b])
        return {"a": a, "c": c}

    plan = declare_module("M", build).plan
    dag = plan.dag()
    assert dag.edges["M#B"] == {"M#C"}
    assert plan.execution_order() == ["M#A", "M#B", "M#C"]


def test_parameters_are_collected_once() -> None:
    def build(m: ModuleBuilder) -> dict[str, ContractFuture]:
        cap = m.get_parameter("cap", 5)
        a = m.contract("A", [cap])
        b = m.contract("B", [[cap]], value=m.get_parameter("fee", 0))
        return {"a": a, "b": b}

    plan = declare_module("M", build).plan
    assert [p.key for p in plan.parameters()] == ["M.cap", "M.fee"]


def test_payload_shape_and_tags() -> None:
    module = declare_module("M", _token_and_vault)
    plan = module.plan.seal()
    payload = plan.to_payload()

    assert isinstance(payload, PlanPayload)
    assert payload.name == "M"
    assert payload.sealed is True
    assert [f.id for f in payload.futures] == list(plan.futures)
    assert payload.order == plan.execution_order()

    token = payload.future("M#Token")
    assert token.kind == "contract"
    assert token.artifact == "Token"
    assert token.args == ["Bank Token", "BNK", {"$account": 0}]

    vault = payload.future("M#Vault")
    assert vault.args == [
        {"$future": "M#Token"},
        {"cap": {"$parameter": {"module": "M", "name": "cap", "default": 10}}},
    ]
    assert vault.dependencies == ["M#Token"]

    call = payload.future("M#Token.transferOwnership")
    assert call.kind == "call"
    assert call.contract == "M#Token"
    assert call.function == "transferOwnership"
    assert sorted(call.dependencies) == ["M#Token", "M#Vault"]

    (mod,) = payload.modules
    assert mod.exports == {"token": "M#Token", "vault": "M#Vault"}


def test_payload_is_json_serializable() -> None:
    plan = declare_module("M", _token_and_vault).plan
    text = plan.to_payload().model_dump_json()
    data = json.loads(text)
    assert data["name"] == "M"
    assert len(data["futures"]) == 3
    assert PlanPayload.model_validate(data) == plan.to_payload()


def test_payload_lookup_of_unknown_future_raises() -> None:
    payload = Plan("empty").to_payload()
    assert payload.futures == [] and payload.order == []
    with pytest.raises(KeyError):
        payload.future("nope")


def test_dag_detects_cycles() -> None:
    """Plans cannot form cycles, but the DAG itself still guards against them."""
    dag = DAG()
    dag.add("a", "b")
    dag.add("b", "c")
    dag.add("c", "a")
    with pytest.raises(ValueError, match="cycle"):
        dag.topological_order()


def test_dag_nodes_carry_future_metadata() -> None:
    plan = declare_module("M", _token_and_vault).plan
    dag = plan.dag()
    assert list(dag.nodes) == list(plan.futures)
    node = dag.nodes["M#Token.transferOwnership"]
    assert node.label == "Token.transferOwnership"
    assert node.meta == {"kind": "call", "module": "M"}
    assert dag.edges["M#Token"] == {"M#Token.transferOwnership", "M#Vault"}
    assert dag.rev_edges["M#Token.transferOwnership"] == {"M#Token", "M#Vault"}
