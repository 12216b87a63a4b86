import json
from pathlib import Path

from localmarket.main import app


def test_openapi_paths_snapshot():
    snapshot_path = Path(__file__).parent / "snapshots" / "openapi_paths_snapshot.json"
    expected_paths = json.loads(snapshot_path.read_text(encoding="utf-8"))
    actual_paths = sorted(app.openapi()["paths"].keys())
    assert actual_paths == expected_paths


def test_error_responses_use_shared_envelope():
    schema = app.openapi()
    invite_redeem = schema["paths"]["/business-invites/redeem"]["post"]["responses"]
    assert {"400", "401", "403", "404", "409"} <= set(invite_redeem)
    example = invite_redeem["409"]["content"]["application/json"]["example"]
    assert example["error"]["code"] == "conflict"
