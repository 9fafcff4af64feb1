# Copyright (c) Animica.
# SPDX-License-Identifier: MIT
import pytest
from fastapi.testclient import TestClient

from registrar.adapters.rpc_mount import create_app
from registrar.config import RegistrarConfig, RpcConfig
from registrar.service import build_service
from registrar.utils.bytes import to_hex

from .conftest import ALICE, BOB, FUNDS, OPERATOR, SECRET, YEAR

ALICE_HEX = to_hex(ALICE)
ALICE_KEY = "alice-key"
OPERATOR_KEY = "operator-key"


@pytest.fixture
def config():
    return RegistrarConfig(
        operator=to_hex(OPERATOR),
        rpc=RpcConfig(api_keys={ALICE_KEY: ALICE_HEX, OPERATOR_KEY: to_hex(OPERATOR)}),
    )


@pytest.fixture
def client(service):
    return TestClient(create_app(service))


def call(client, method, params=None, id_=1, key=None):
    body = {"jsonrpc": "2.0", "id": id_, "method": method}
    if params is not None:
        body["params"] = params
    headers = {"Authorization": f"Bearer {key}"} if key else None
    r = client.post("/rpc", json=body, headers=headers)
    assert r.status_code == 200
    return r.json()


def intent_params(**extra):
    params = {"label": "alice", "owner": ALICE_HEX, "duration": YEAR, "secret": to_hex(SECRET)}
    params.update(extra)
    return params


def test_get_params(client, service):
    res = call(client, "registrar.getParams")["result"]
    assert res["tld"] == "eth"
    assert res["minCommitmentAge"] == 60
    assert res["operator"] == to_hex(OPERATOR)
    assert res["publicResolver"] == to_hex(service.resolver.address)


def test_commit_register_withdraw_flow(client, service, clock):
    h = call(client, "registrar.makeCommitment", intent_params())["result"]["commitment"]
    accepted = call(client, "registrar.commit", {"commitment": h})["result"]
    assert accepted == {"commitment": h, "acceptedAt": clock.now()}
    assert call(client, "registrar.getCommitment", {"commitment": h})["result"]["acceptedAt"] == clock.now()

    clock.advance(60)
    price = call(client, "registrar.rentPrice", {"name": "alice", "duration": YEAR})["result"]
    assert price == {"base": YEAR, "premium": 0, "total": YEAR}

    res = call(client, "registrar.register",
               intent_params(value=price["total"] + 5), key=ALICE_KEY)["result"]
    assert res["name"] == "alice.eth"
    assert res["refund"] == 5
    assert call(client, "registrar.available", {"name": "alice"})["result"] is False

    events = call(client, "registrar.getEvents", {"event": "NameRegistered"})["result"]
    assert [e["args"]["name"] for e in events] == ["alice"]

    bal = call(client, "registrar.balanceOf", {"address": to_hex(OPERATOR)})["result"]
    assert bal["balance"] == YEAR
    out = call(client, "registrar.withdraw", {}, key=OPERATOR_KEY)["result"]
    assert out["amount"] == YEAR
    assert call(client, "registrar.bankBalanceOf",
                {"address": to_hex(OPERATOR)})["result"]["balance"] == YEAR


def test_renew_and_renew_all(client, service, clock):
    h = call(client, "registrar.makeCommitment", intent_params())["result"]["commitment"]
    call(client, "registrar.commit", {"commitment": h})
    clock.advance(60)
    call(client, "registrar.register", intent_params(value=YEAR), key=ALICE_KEY)

    res = call(client, "registrar.renew",
               {"name": "alice", "duration": YEAR, "value": YEAR}, key=ALICE_KEY)["result"]
    assert res["cost"] == YEAR
    assert call(client, "registrar.rentPriceBulk",
                {"names": ["alice"], "duration": YEAR})["result"] == {"total": YEAR}
    bulk = call(client, "registrar.renewAll",
                {"names": ["alice"], "duration": YEAR, "value": YEAR}, key=ALICE_KEY)["result"]
    assert bulk["renewals"][0]["expires"] == res["expires"] + YEAR


def test_registrar_error_shape(client):
    resp = call(client, "registrar.withdraw", {"caller": ALICE_HEX}, key=ALICE_KEY)
    err = resp["error"]
    assert err["code"] == -32000
    assert err["data"]["code"] == "NOTHING_TO_WITHDRAW"
    assert resp["id"] == 1


def test_commitment_window_error(client):
    h = call(client, "registrar.makeCommitment", intent_params())["result"]["commitment"]
    call(client, "registrar.commit", {"commitment": h})
    err = call(client, "registrar.register", intent_params(value=YEAR), key=ALICE_KEY)["error"]
    assert err["data"]["code"] == "COMMITMENT_TOO_NEW"


@pytest.mark.parametrize(
    "method,params",
    [
        ("registrar.balanceOf", {"address": "0x1234"}),
        ("registrar.commit", {"commitment": "0xzz"}),
        ("registrar.rentPrice", {"name": "alice", "duration": -1}),
        ("registrar.withdraw", {"caller": ALICE_HEX, "extra": 1}),
        ("registrar.register", intent_params(caller=ALICE_HEX)),
    ],
)
def test_invalid_params(client, method, params):
    assert call(client, method, params, key=ALICE_KEY)["error"]["code"] == -32602


def test_unknown_method(client):
    assert call(client, "registrar.nope")["error"]["code"] == -32601


def test_parse_error(client):
    r = client.post("/rpc", content=b"{not json", headers={"content-type": "application/json"})
    assert r.json()["error"]["code"] == -32700


def test_batch_and_notification(client):
    r = client.post("/rpc", json=[
        {"jsonrpc": "2.0", "id": 1, "method": "registrar.valid", "params": {"name": "abc"}},
        {"jsonrpc": "2.0", "method": "registrar.valid", "params": {"name": "ab"}},
        {"jsonrpc": "2.0", "id": 2, "method": "registrar.valid", "params": {"name": "ab"}},
    ])
    assert r.json() == [
        {"jsonrpc": "2.0", "id": 1, "result": True},
        {"jsonrpc": "2.0", "id": 2, "result": False},
    ]
    r = client.post("/rpc", json={"jsonrpc": "2.0", "method": "registrar.getParams"})
    assert r.status_code == 204


def test_faucet_disabled_by_default(client):
    err = call(client, "registrar.fund", {"address": ALICE_HEX, "amount": 1})["error"]
    assert err["data"]["code"] == "UNAUTHORIZED"


def test_faucet_enabled(config, clock, metrics):
    config.dev_faucet = True
    svc = build_service(config, clock=clock, metrics=metrics)
    with TestClient(create_app(svc)) as c:
        res = call(c, "registrar.fund", {"address": ALICE_HEX, "amount": 500})["result"]
    assert res["balance"] == 500
    svc.close()


def test_rest_routes(client, service, clock):
    assert client.get("/registrar/params").json()["tld"] == "eth"
    assert client.get("/registrar/available/alice").json() == {
        "name": "alice", "valid": True, "available": True,
    }
    assert client.get("/registrar/available/ab").json()["valid"] is False
    assert client.get("/registrar/price/abc", params={"duration": 10}).json()["total"] == 40

    h = to_hex(service.controller.make_commitment("alice", ALICE, YEAR, SECRET))
    assert client.get(f"/registrar/commitments/{h}").status_code == 404
    service.controller.commit(bytes.fromhex(h[2:]))
    assert client.get(f"/registrar/commitments/{h}").json()["acceptedAt"] == clock.now()
    assert client.get("/registrar/commitments/0x12").status_code == 400

    assert client.get(f"/registrar/balances/{ALICE_HEX}").json()["balance"] == 0
    assert client.get("/registrar/balances/nothex").status_code == 400
    assert client.get("/registrar/events", params={"limit": 5}).json() == []


def test_metrics_endpoint(client):
    call(client, "registrar.commit", {"commitment": "0x" + "ab" * 32})
    r = client.get("/metrics")
    assert r.status_code == 200
    assert 'animica_registrar_commits_total{outcome="ok"} 1.0' in r.text


def test_caller_comes_from_api_key(client, service, clock):
    h = call(client, "registrar.makeCommitment", intent_params(owner=to_hex(BOB)))["result"]["commitment"]
    call(client, "registrar.commit", {"commitment": h})
    clock.advance(60)

    # without a key the claimed caller is not trusted
    err = call(client, "registrar.register",
               intent_params(owner=to_hex(BOB), caller=ALICE_HEX, value=YEAR))["error"]
    assert err["data"]["code"] == "UNAUTHORIZED"
    # a key for one account cannot act for another
    err = call(client, "registrar.register",
               intent_params(owner=to_hex(BOB), caller=ALICE_HEX, value=YEAR),
               key=OPERATOR_KEY)["error"]
    assert err["data"]["code"] == "UNAUTHORIZED"
    assert service.bank.balance_of(ALICE) == FUNDS
    assert service.controller.available("alice")

    res = call(client, "registrar.register", intent_params(owner=to_hex(BOB), value=YEAR),
               key=ALICE_KEY)["result"]
    assert res["owner"] == to_hex(BOB)
    assert service.bank.balance_of(ALICE) == FUNDS - YEAR


def test_set_referral_fee_requires_operator_key(client, service):
    op = to_hex(OPERATOR)
    err = call(client, "registrar.setReferralFee", {"caller": op, "rate": 1000})["error"]
    assert err["data"]["code"] == "UNAUTHORIZED"
    err = call(client, "registrar.setReferralFee", {"caller": op, "rate": 1000}, key=ALICE_KEY)["error"]
    assert err["data"]["code"] == "UNAUTHORIZED"
    err = call(client, "registrar.setReferralFee", {"rate": 1000}, key=ALICE_KEY)["error"]
    assert err["data"]["code"] == "UNAUTHORIZED"
    assert service.controller.referral_fee == 0

    res = call(client, "registrar.setReferralFee", {"rate": 50}, key=OPERATOR_KEY)["result"]
    assert res == {"referralFee": 50}


def test_unknown_api_key_is_rejected(client):
    r = client.post(
        "/rpc",
        json={"jsonrpc": "2.0", "id": 1, "method": "registrar.getParams"},
        headers={"Authorization": "Bearer nope"},
    )
    assert r.status_code == 401
    r = client.post("/rpc", params={"api_key": ALICE_KEY},
                    json={"jsonrpc": "2.0", "id": 1, "method": "registrar.withdraw"})
    assert r.json()["error"]["data"]["code"] == "NOTHING_TO_WITHDRAW"


def test_dev_trust_caller(config, clock, metrics):
    config.dev_trust_caller = True
    svc = build_service(config, clock=clock, metrics=metrics)
    c = TestClient(create_app(svc))
    res = call(c, "registrar.setReferralFee", {"caller": to_hex(OPERATOR), "rate": 10})["result"]
    assert res == {"referralFee": 10}
    svc.close()
