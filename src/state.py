"""
Local state file for secctl.

Stores one record per managed resource, keyed by resource name, in a JSON
file. Records use the same shape the reconciler consumes, so a stored record
can be passed straight to AwsSecurityReconciler.reconcile().
"""

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from plugins.reconcilers.base import ReconcileResult

logger = logging.getLogger(__name__)

STATE_VERSION = 1


def new_record(name: str, resource_type_name: str, spec: Dict[str, Any]) -> Dict[str, Any]:
    """Create a record for a resource that has never been reconciled."""
    return {
        "name": name,
        "resource_type_name": resource_type_name,
        "spec": spec,
        "identity": "",
        "last_applied_spec": None,
        "observed": {},
        "deleted": False,
        "status": "pending",
        "status_message": None,
        "last_reconcile_time": None,
    }


def apply_result(record: Dict[str, Any], result: ReconcileResult) -> Dict[str, Any]:
    """
    Fold a reconcile result into a record.

    Failed passes keep the last applied spec so the next pass retries the
    change, but still record the identity and observed state the failed pass
    left behind: a create can succeed before a later step fails, and a
    replacement can delete the old resource before its create fails.
    """
    record = dict(record)
    record["last_reconcile_time"] = datetime.now(timezone.utc).isoformat()
    record["status_message"] = result.message

    if not result.success:
        record["status"] = "failed"
        record["identity"] = result.identity
        record["observed"] = result.observed
        return record

    record["identity"] = result.identity
    record["observed"] = result.observed
    if result.desired is not None and result.action == "import":
        record["spec"] = result.desired
    record["last_applied_spec"] = record["spec"] if result.identity else None
    record["status"] = "ready" if result.identity else "absent"
    return record


class StateStore:
    """JSON file of resource records."""

    def __init__(self, path: str):
        self.path = Path(path)
        self._records: Dict[str, Dict[str, Any]] = {}
        self._loaded = False

    def load(self) -> None:
        if self.path.exists():
            with open(self.path, "r") as f:
                data = json.load(f)
            self._records = data.get("resources", {})
        else:
            self._records = {}
        self._loaded = True

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w") as f:
            json.dump(
                {"version": STATE_VERSION, "resources": self._records},
                f,
                indent=2,
                sort_keys=True,
            )
        os.replace(tmp_path, self.path)
        logger.debug(f"Saved {len(self._records)} records to {self.path}")

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    def get(self, name: str) -> Optional[Dict[str, Any]]:
        self._ensure_loaded()
        return self._records.get(name)

    def put(self, record: Dict[str, Any]) -> None:
        self._ensure_loaded()
        self._records[record["name"]] = record

    def remove(self, name: str) -> bool:
        self._ensure_loaded()
        return self._records.pop(name, None) is not None

    def list(self) -> List[Dict[str, Any]]:
        self._ensure_loaded()
        return [self._records[name] for name in sorted(self._records)]
