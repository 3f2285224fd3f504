import json
from pathlib import Path

from stockdesk.main import app


def test_openapi_paths_snapshot():
    snapshot_path = Path(__file__).parent / "snapshots" / "openapi_paths_snapshot.json"
    expected_paths = json.loads(snapshot_path.read_text(encoding="utf-8"))
    actual_paths = sorted(app.openapi()["paths"].keys())
    assert actual_paths == expected_paths


def test_error_responses_document_the_envelope():
    schema = app.openapi()
    create_product = schema["paths"]["/api/products"]["post"]
    assert "409" in create_product["responses"]
    assert "ErrorOut" in schema["components"]["schemas"]
