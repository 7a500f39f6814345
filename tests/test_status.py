import json

from container_trust_plugin import status
from container_trust_plugin.audit import audit, load_audit, parse_time
from container_trust_plugin.decision import Decision, InterceptedRequest
from container_trust_plugin.policy import TrustPolicy
from container_trust_plugin.reference import parse

from tests.helpers import DIGEST_A, DIGEST_B


def test_audit_appends_jsonl(tmp_path):
    path = str(tmp_path / "logs" / "audit.log")
    request = InterceptedRequest("POST", "/images/create?fromImage=busybox&tag=v1")
    audit(path, request, Decision(allow=False, error="nope", pull=True))
    audit(path, request, Decision(allow=True, pull=True, image="busybox:v1", digest=DIGEST_A))

    events = load_audit(path)
    assert [e["event"] for e in events] == ["DENIED", "ALLOWED"]
    assert events[0]["message"] == "nope"
    assert events[1]["digest"] == DIGEST_A


def test_load_audit_skips_malformed_lines(tmp_path):
    path = tmp_path / "audit.log"
    path.write_text('{"event": "ALLOWED"}\nnot json\n\n{"event": "DENIED"}\n')
    assert [e["event"] for e in load_audit(str(path))] == ["ALLOWED", "DENIED"]
    assert load_audit(str(tmp_path / "missing.log")) == []


def test_parse_time_tolerates_garbage():
    assert parse_time("2024-01-02T03:04:05Z").year == 2024
    assert parse_time("yesterday") == parse_time(None)


def test_status_summary(tmp_path, capsys):
    log = tmp_path / "audit.log"
    records = [
        {"timestamp": "2024-01-01T00:00:00Z", "event": "ALLOWED", "image": "old:v1", "message": ""},
        {"timestamp": "2024-01-03T00:00:00Z", "event": "DENIED", "image": "new:v1", "message": "image isn't allowed"},
        {"timestamp": "2024-01-02T00:00:00Z", "event": "ALLOWED", "image": "mid:v1", "message": ""},
    ]
    log.write_text("".join(json.dumps(r) + "\n" for r in records))
    policy = TrustPolicy(default=[{"type": "reject"}])
    policy.pin(parse("busybox"), DIGEST_A)
    policy.pin(parse("quay.io/team/app"), DIGEST_B)
    policy.save(str(tmp_path / "policy.json"))

    status.main(["--audit-log", str(log), "--policy", str(tmp_path / "policy.json"), "--last", "2"])

    out = capsys.readouterr().out
    assert "Pinned digests:" in out and " 2" in out
    assert "Allowed pulls:" in out
    lines = [line for line in out.splitlines() if "v1 -" in line]
    assert len(lines) == 2
    assert "new:v1" in lines[0] and "mid:v1" in lines[1]


def test_status_without_data(tmp_path, capsys):
    status.main(["--audit-log", str(tmp_path / "none.log"), "--policy", str(tmp_path / "none.json")])
    assert "(no events yet)" in capsys.readouterr().out
