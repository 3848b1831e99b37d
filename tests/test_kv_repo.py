from __future__ import annotations

import sqlite3

from db import schema
from db.repos.kv_repo import KeyValueRepo


def test_kv_repo_set_get_overwrite_remove(tmp_path):
    db = sqlite3.connect(str(tmp_path / "t.db"))
    try:
        schema.bootstrap(db)
        schema.bootstrap(db)  # idempotent
        repo = KeyValueRepo(db)
        assert repo.get("credential") is None
        repo.set("credential", "k1")
        repo.set("credential", "k2")
        assert repo.get("credential") == "k2"
        repo.remove("credential")
        assert repo.get("credential") is None
        repo.remove("never-set")
    finally:
        db.close()
