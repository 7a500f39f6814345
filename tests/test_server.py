import json

import pytest
from fastapi.testclient import TestClient

from container_trust_plugin.server import PLUGIN_MIMETYPE, create_app

from tests.helpers import DIGEST_A, FakeEvaluator


def authz(client, method, uri, path="/AuthZPlugin.AuthZReq"):
    body = {"User": "", "RequestMethod": method, "RequestUri": uri, "RequestHeaders": {}}
    return client.post(path, content=json.dumps(body), headers={"Content-Type": PLUGIN_MIMETYPE})


@pytest.fixture
def audit_log(tmp_path):
    return str(tmp_path / "audit" / "audit.log")


@pytest.fixture
def client(make_collaborators, audit_log):
    return TestClient(create_app(make_collaborators(), audit_log=audit_log))


def read_audit(path):
    with open(path) as f:
        return [json.loads(line) for line in f]


def test_activate_advertises_authz(client):
    response = client.post("/Plugin.Activate")
    assert response.status_code == 200
    assert response.json() == {"Implements": ["authz"]}
    assert response.headers["content-type"].startswith(PLUGIN_MIMETYPE)


def test_non_pull_is_allowed_and_not_audited(client, audit_log):
    response = authz(client, "GET", "/v1.41/containers/json")
    assert response.json() == {"Allow": True}
    with pytest.raises(FileNotFoundError):
        read_audit(audit_log)


def test_allowed_pull_is_audited(client, audit_log):
    uri = f"/v1.41/images/create?fromImage=busybox&tag={DIGEST_A}"
    response = authz(client, "POST", uri)
    assert response.json() == {"Allow": True}

    (record,) = read_audit(audit_log)
    assert record["event"] == "ALLOWED"
    assert record["image"] == f"busybox@{DIGEST_A}"
    assert record["digest"] == DIGEST_A
    assert record["uri"] == uri
    assert record["timestamp"].endswith("Z")


def test_denied_pull_reports_err(client, audit_log):
    response = authz(client, "POST", "/v1.41/images/create?fromImage=busybox")
    assert response.json() == {"Allow": False, "Err": "unable to verify all tags for the given image"}
    (record,) = read_audit(audit_log)
    assert record["event"] == "DENIED"
    assert record["image"] is None


def test_policy_denial_reports_msg(make_collaborators, audit_log):
    app = create_app(make_collaborators(evaluator=FakeEvaluator(allowed=False)), audit_log=audit_log)
    response = authz(TestClient(app), "POST", "/v1.41/images/create?fromImage=busybox&tag=latest")
    assert response.json() == {"Allow": False, "Msg": "image isn't allowed"}


def test_disabled_plugin_allows_everything(make_collaborators, engine):
    client = TestClient(create_app(make_collaborators(), enabled=False))
    response = authz(client, "POST", "/v1.41/images/create?fromImage=busybox")
    assert response.json() == {"Allow": True}
    assert engine.calls == []


def test_responses_are_always_allowed(client):
    response = authz(client, "POST", "/v1.41/images/create?fromImage=busybox", path="/AuthZPlugin.AuthZRes")
    assert response.json() == {"Allow": True}


def test_unknown_fields_are_ignored(client):
    body = {"RequestMethod": "GET", "RequestUri": "/_ping", "ResponseStatusCode": 200, "Extra": [1, 2]}
    response = client.post("/AuthZPlugin.AuthZReq", json=body)
    assert response.json() == {"Allow": True}
