"""Unit tests for state.py - the secctl state file."""

import json

from plugins.reconcilers.base import ReconcileResult
from state import STATE_VERSION, StateStore, apply_result, new_record

GRAPH_ARN = "arn:aws:detective:us-east-1:111122223333:graph:0123456789abcdef"


class TestRecords:
    """Tests for new_record and apply_result."""

    def test_new_record(self):
        record = new_record("graph", "DetectiveGraph", {"graph_tags": {}})
        assert record["name"] == "graph"
        assert record["identity"] == ""
        assert record["last_applied_spec"] is None
        assert record["deleted"] is False
        assert record["status"] == "pending"

    def test_apply_success(self):
        record = new_record("graph", "DetectiveGraph", {"graph_tags": {"a": "1"}})
        result = ReconcileResult(
            success=True,
            message="Reconciliation successful",
            action="create",
            identity=GRAPH_ARN,
            observed={"arn": GRAPH_ARN, "graph_tags": {"a": "1"}},
        )

        updated = apply_result(record, result)

        assert updated["identity"] == GRAPH_ARN
        assert updated["observed"]["arn"] == GRAPH_ARN
        assert updated["last_applied_spec"] == {"graph_tags": {"a": "1"}}
        assert updated["status"] == "ready"
        assert updated["last_reconcile_time"] is not None
        assert record["status"] == "pending"

    def test_apply_failure_keeps_last_good_state(self):
        record = dict(
            new_record("graph", "DetectiveGraph", {"graph_tags": {"a": "2"}}),
            identity=GRAPH_ARN,
            last_applied_spec={"graph_tags": {"a": "1"}},
        )
        result = ReconcileResult(
            success=False,
            message="Reconciliation error: boom",
            action="update",
            identity=GRAPH_ARN,
            observed={"arn": GRAPH_ARN, "graph_tags": {"a": "1"}},
        )

        updated = apply_result(record, result)

        assert updated["status"] == "failed"
        assert updated["status_message"] == "Reconciliation error: boom"
        assert updated["identity"] == GRAPH_ARN
        assert updated["last_applied_spec"] == {"graph_tags": {"a": "1"}}
        assert updated["observed"]["graph_tags"] == {"a": "1"}

    def test_apply_failure_records_partial_progress(self):
        record = dict(
            new_record("invite", "DetectiveInvitationRequest", {"email": "new@example.com"}),
            identity=f"{GRAPH_ARN}/123456789012",
            observed={"email": "old@example.com"},
            last_applied_spec={"email": "old@example.com"},
        )
        result = ReconcileResult(
            success=False, message="Reconciliation error: denied", action="replace"
        )

        updated = apply_result(record, result)

        assert updated["status"] == "failed"
        assert updated["identity"] == ""
        assert updated["observed"] == {}
        assert updated["last_applied_spec"] == {"email": "old@example.com"}

    def test_apply_absent(self):
        record = dict(
            new_record("graph", "DetectiveGraph", {}),
            identity=GRAPH_ARN,
            last_applied_spec={},
        )
        result = ReconcileResult(
            success=True, message="Resource no longer exists", action="refresh"
        )

        updated = apply_result(record, result)

        assert updated["identity"] == ""
        assert updated["last_applied_spec"] is None
        assert updated["status"] == "absent"

    def test_apply_import_takes_desired(self):
        record = new_record("member", "Macie2Member", {})
        result = ReconcileResult(
            success=True,
            message="Resource imported",
            action="import",
            identity="123456789012",
            observed={"account_id": "123456789012", "arn": "arn:x"},
            desired={"account_id": "123456789012"},
        )

        updated = apply_result(record, result)

        assert updated["spec"] == {"account_id": "123456789012"}
        assert updated["last_applied_spec"] == {"account_id": "123456789012"}


class TestStateStore:
    """Tests for StateStore."""

    def test_missing_file_is_empty(self, tmp_path):
        store = StateStore(str(tmp_path / "state.json"))
        assert store.list() == []
        assert store.get("graph") is None

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "nested" / "state.json"
        store = StateStore(str(path))
        store.put(new_record("b", "DetectiveGraph", {}))
        store.put(new_record("a", "Macie2Member", {"account_id": "1"}))
        store.save()

        data = json.loads(path.read_text())
        assert data["version"] == STATE_VERSION
        assert set(data["resources"]) == {"a", "b"}

        reloaded = StateStore(str(path))
        assert [r["name"] for r in reloaded.list()] == ["a", "b"]
        assert reloaded.get("a")["spec"] == {"account_id": "1"}

    def test_save_leaves_no_temp_file(self, tmp_path):
        path = tmp_path / "state.json"
        store = StateStore(str(path))
        store.put(new_record("a", "DetectiveGraph", {}))
        store.save()

        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    def test_remove(self, tmp_path):
        store = StateStore(str(tmp_path / "state.json"))
        store.put(new_record("a", "DetectiveGraph", {}))

        assert store.remove("a") is True
        assert store.remove("a") is False
        assert store.get("a") is None
