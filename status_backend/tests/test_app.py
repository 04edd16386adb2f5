import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from status_backend import dependencies
from status_backend.app import create_app
from status_backend.config import Settings
from status_backend.db import InMemoryDbClient, SqlDbClient
from status_backend.dependencies import get_db_client
from status_backend.errors import StorageError


class BackendApiTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.app = create_app()
        self.app.dependency_overrides[get_db_client] = lambda: self.db
        self.client = TestClient(self.app)

    def _invite(self, username, email=None):
        response = self.client.post(
            "/api/invite",
            json={"username": username, "email": email or f"{username.lower()}@demo.com"},
        )
        self.assertEqual(response.status_code, 200)
        return response.json()["id"]

    def _create_task(self, goal, **fields):
        response = self.client.post("/api/phases", json={"goal": goal, **fields})
        self.assertEqual(response.status_code, 200)
        return response.json()["id"]

    def _tasks_by_id(self):
        return {task["id"]: task for task in self.client.get("/api/phases").json()}

    def test_create_phase_defaults_assignee_to_team(self):
        task_id = self._create_task("General Ledger Review", stage="Outstanding")

        task = self._tasks_by_id()[task_id]
        self.assertEqual(task["assigned_to"], "team")
        self.assertIsNone(task["assignee_id"])
        self.assertEqual(task["stage"], "Outstanding")
        self.assertEqual(task["commentArea"], "")

    def test_update_phase(self):
        task_id = self._create_task("Depreciation Journal Entries")

        response = self.client.put(
            f"/api/phases/{task_id}",
            json={"stage": "Resolved", "commentArea": "done in March"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"updated": True})

        task = self._tasks_by_id()[task_id]
        self.assertEqual(task["stage"], "Resolved")
        self.assertEqual(task["commentArea"], "done in March")
        self.assertEqual(task["goal"], "Depreciation Journal Entries")

    def test_numeric_task_fields_are_stored_as_text(self):
        task_id = self._create_task(5, need=12.5)

        task = self._tasks_by_id()[task_id]
        self.assertEqual(task["goal"], "5")
        self.assertEqual(task["need"], "12.5")

    def test_update_missing_phase_reports_not_updated(self):
        response = self.client.put("/api/phases/999", json={"stage": "Resolved"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"updated": False})

    def test_delete_phase(self):
        task_id = self._create_task("Accrual Reversal Entries")

        response = self.client.delete(f"/api/phases/{task_id}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"deleted": True})

        missing = self.client.delete(f"/api/phases/{task_id}")
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json(), {"error": "Task not found"})

    def test_malformed_id_is_a_validation_error(self):
        response = self.client.delete("/api/phases/not-a-number")
        self.assertEqual(response.status_code, 400)
        self.assertIn("error", response.json())

    def test_invite_with_invalid_email_is_rejected(self):
        response = self.client.post(
            "/api/invite", json={"username": "Alice Johnson", "email": "alice.demo.com"}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Invalid username or email"})
        self.assertEqual(self.client.get("/api/team").json(), [])

    def test_invite_with_trailing_newline_in_email_is_rejected(self):
        response = self.client.post(
            "/api/invite", json={"username": "Bob", "email": "bob@demo.com\n"}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.db.count_members(), 0)

    def test_invite_without_username_is_rejected(self):
        response = self.client.post("/api/invite", json={"email": "bob@demo.com"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.db.count_members(), 0)

    def test_invite_defaults_org(self):
        response = self.client.post(
            "/api/invite", json={"username": "Bob Smith", "email": "bob.smith@demo.com"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["message"], "User added")
        self.assertEqual(response.json()["username"], "Bob Smith")

        members = self.client.get("/api/team").json()
        self.assertEqual(len(members), 1)
        self.assertEqual(members[0]["org"], "PHG")
        self.assertFalse(members[0]["not_working"])

    def test_offboard_reassigns_only_that_members_tasks(self):
        alice = self._invite("Alice")
        self._invite("Bob")
        first = self._create_task("Revenue Accrual Entries", assigned_to="Alice")
        second = self._create_task("Expense Accrual Entries", assigned_to="Alice")
        bobs = self._create_task("Cash Receipt Journal Entries", assigned_to="Bob")
        shared = self._create_task("Preliminary Journal Review")

        response = self.client.patch(
            f"/api/team/{alice}/not-working", json={"reassign_to": "Carol"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"updated": True, "reassigned": 2})

        tasks = self._tasks_by_id()
        self.assertEqual(tasks[first]["assigned_to"], "Carol")
        self.assertEqual(tasks[second]["assigned_to"], "Carol")
        self.assertEqual(tasks[bobs]["assigned_to"], "Bob")
        self.assertEqual(tasks[shared]["assigned_to"], "team")

        members = {m["id"]: m for m in self.client.get("/api/team").json()}
        self.assertTrue(members[alice]["not_working"])

    def test_offboard_without_body_reassigns_to_team(self):
        alice = self._invite("Alice")
        task_id = self._create_task("Chart of Accounts Validation", assigned_to="Alice")

        response = self.client.patch(f"/api/team/{alice}/not-working")
        self.assertEqual(response.status_code, 200)

        task = self._tasks_by_id()[task_id]
        self.assertEqual(task["assigned_to"], "team")
        self.assertIsNone(task["assignee_id"])

    def test_offboard_missing_member(self):
        response = self.client.patch("/api/team/42/not-working", json={})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Team member not found"})

    def test_delete_member_with_tasks_is_blocked(self):
        carol = self._invite("Carol")
        self._create_task("Month-End Accrual Finalization", assigned_to="Carol")

        response = self.client.delete(f"/api/team/{carol}")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json(), {"error": "Cannot delete: member is assigned to tasks"}
        )
        usernames = [m["username"] for m in self.client.get("/api/team").json()]
        self.assertIn("Carol", usernames)

    def test_delete_member_without_tasks(self):
        david = self._invite("David")
        self._create_task("Prepaid Expense Amortization")

        response = self.client.delete(f"/api/team/{david}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"deleted": True})
        self.assertEqual(self.client.get("/api/team").json(), [])

        missing = self.client.delete(f"/api/team/{david}")
        self.assertEqual(missing.status_code, 404)

    def test_delete_after_offboarding_succeeds(self):
        alice = self._invite("Alice")
        self._create_task("Financial Statement Preparation", assigned_to="Alice")

        self.assertEqual(self.client.delete(f"/api/team/{alice}").status_code, 400)
        self.client.patch(f"/api/team/{alice}/not-working", json={})
        self.assertEqual(self.client.delete(f"/api/team/{alice}").status_code, 200)

    def test_project_round_trip(self):
        self.assertEqual(self.client.get("/api/project").json(), {"name": ""})

        response = self.client.post("/api/project", json={"name": "X"})
        self.assertEqual(response.json(), {"success": True})
        self.assertEqual(self.client.get("/api/project").json(), {"name": "X"})

    def test_whiteboard_state_round_trip(self):
        self.assertEqual(self.client.get("/api/whiteboard").json(), {})

        state = {"strokes": [[0, 0], [10, 12]], "zoom": 1.5}
        response = self.client.post("/api/whiteboard", json=state)
        self.assertEqual(response.json(), {"success": True})
        self.assertEqual(self.client.get("/api/whiteboard").json(), state)

    def test_latest_snapshot_defaults_when_empty(self):
        response = self.client.get("/api/whiteboard/latest")
        self.assertEqual(response.json(), {"canvasImage": None, "stickyNotes": []})

    def test_latest_snapshot_is_most_recent(self):
        first = self.client.post(
            "/api/whiteboard/save",
            json={"canvasImage": "data:image/png;base64,AAA", "stickyNotes": [{"text": "one"}]},
        )
        self.assertEqual(first.status_code, 200)
        second = self.client.post(
            "/api/whiteboard/save",
            json={"canvasImage": "data:image/png;base64,BBB", "stickyNotes": [{"text": "two"}]},
        )
        self.assertEqual(second.json()["saved"], True)

        latest = self.client.get("/api/whiteboard/latest").json()
        self.assertEqual(latest["canvasImage"], "data:image/png;base64,BBB")
        self.assertEqual(latest["stickyNotes"], [{"text": "two"}])

    def test_snapshot_requires_both_fields(self):
        response = self.client.post(
            "/api/whiteboard/save", json={"canvasImage": "data:image/png;base64,AAA"}
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"error": "Missing canvasImage or stickyNotes"})

        response = self.client.post("/api/whiteboard/save", json={"stickyNotes": []})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.db.count_snapshots(), 0)

    def test_snapshot_sticky_notes_must_be_a_list(self):
        response = self.client.post(
            "/api/whiteboard/save",
            json={"canvasImage": "data:image/png;base64,AAA", "stickyNotes": {"a": 1}},
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("error", response.json())
        self.assertEqual(self.db.count_snapshots(), 0)

    def test_join_always_succeeds(self):
        response = self.client.get("/api/join", params={"invite": "anything"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"message": "Joined successfully"})

    def test_storage_error_is_reported(self):
        failing = MagicMock()
        failing.list_tasks.side_effect = StorageError("database is locked")
        self.app.dependency_overrides[get_db_client] = lambda: failing

        response = self.client.get("/api/phases")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "database is locked"})


class StartupSeedTests(unittest.TestCase):
    def test_lifespan_seeds_empty_store(self):
        db = InMemoryDbClient()
        with patch("status_backend.app.get_db_client", return_value=db):
            with TestClient(create_app()):
                pass
        self.assertEqual(db.count_members(), 4)
        self.assertEqual(db.count_tasks(), 16)
        self.assertEqual(db.get_project_name(), "")
        self.assertEqual(db.get_whiteboard_state(), {})


class SqliteFileApiTests(unittest.TestCase):
    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.db = SqlDbClient(f"sqlite:///{Path(tmp.name) / 'status.db'}")
        self.addCleanup(self.db.engine.dispose)
        app = create_app()
        app.dependency_overrides[get_db_client] = lambda: self.db
        self.client = TestClient(app)

    def test_offboard_and_remove(self):
        member_id = self.client.post(
            "/api/invite", json={"username": "Bob Smith", "email": "bob.smith@demo.com"}
        ).json()["id"]
        task_id = self.client.post(
            "/api/phases", json={"goal": "Adjusting Entry Corrections", "assigned_to": "Bob Smith"}
        ).json()["id"]

        self.assertEqual(self.client.delete(f"/api/team/{member_id}").status_code, 400)

        response = self.client.patch(
            f"/api/team/{member_id}/not-working", json={"reassign_to": "Carol Lee"}
        )
        self.assertEqual(response.json(), {"updated": True, "reassigned": 1})
        tasks = self.client.get("/api/phases").json()
        self.assertEqual(tasks[0]["id"], task_id)
        self.assertEqual(tasks[0]["assigned_to"], "Carol Lee")

        self.assertEqual(self.client.delete(f"/api/team/{member_id}").status_code, 200)
        self.assertEqual(self.client.get("/api/team").json(), [])


class UnreachableDatabaseTests(unittest.TestCase):
    def test_app_starts_and_reports_storage_errors(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        # The parent directory does not exist, so SQLite cannot open the file.
        url = f"sqlite:///{Path(tmp.name) / 'missing' / 'status.db'}"

        with patch.object(dependencies, "_db_client", None), patch(
            "status_backend.dependencies.get_settings",
            return_value=Settings(database_url=url),
        ):
            with TestClient(create_app()) as client:
                response = client.get("/api/phases")

        self.assertEqual(response.status_code, 500)
        self.assertIn("unable to open database file", response.json()["error"])


if __name__ == "__main__":
    unittest.main()
