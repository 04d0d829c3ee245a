import unittest
from pathlib import Path
from unittest.mock import patch

from fastapi.testclient import TestClient

from linkbio.app import create_app
from linkbio.config import Settings
from linkbio.db import InMemoryDbClient, SqlDbClient

PUBLIC_DIR = Path(__file__).resolve().parents[1] / "public"


def _settings() -> Settings:
    return Settings(_env_file=None, LINKBIO_STATIC_DIR=str(PUBLIC_DIR))


class ApiContractMixin:
    """Runs the HTTP contract against whichever storage client make_db returns."""

    def make_db(self):
        raise NotImplementedError

    def setUp(self):
        self.db = self.make_db()
        self.app = create_app(db=self.db, settings=_settings())
        self.client = TestClient(self.app)

    def _create_link(self, category_id, title="Site", url="https://example.com"):
        response = self.client.post(
            "/api/links",
            json={"category_id": category_id, "title": title, "url": url},
        )
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()

    def test_fresh_database_lists_seeded_categories(self):
        response = self.client.get("/api/categories")
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(
            [c["name"] for c in payload],
            ["Social Media", "Affiliations", "Print-on-Demand Creations"],
        )
        self.assertEqual([c["order_index"] for c in payload], [1, 2, 3])
        self.assertEqual([c["icon"] for c in payload], ["📱", "🔗", "🎨"])
        for category in payload:
            self.assertEqual(category["links"], [])

    def test_create_category_appends_after_max_order(self):
        response = self.client.post("/api/categories", json={"name": "Projects"})
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["name"], "Projects")
        self.assertEqual(payload["order_index"], 4)
        self.assertEqual(payload["icon"], "📁")
        self.assertEqual(payload["description"], "")
        self.assertIsInstance(payload["id"], int)

        names = [c["name"] for c in self.client.get("/api/categories").json()]
        self.assertEqual(names[-1], "Projects")

    def test_create_category_without_name_is_rejected(self):
        for body in ({}, {"name": ""}, {"name": None, "icon": "x"}):
            response = self.client.post("/api/categories", json=body)
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.json(), {"error": "Name is required"})
        self.assertEqual(len(self.client.get("/api/categories").json()), 3)

    def test_duplicate_category_name_is_a_server_error(self):
        client = TestClient(self.app, raise_server_exceptions=False)
        response = client.post("/api/categories", json={"name": "Affiliations"})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Server error"})
        self.assertEqual(len(self.client.get("/api/categories").json()), 3)

    def test_get_category_by_id(self):
        category = self.client.get("/api/categories").json()[0]
        self._create_link(category["id"])

        response = self.client.get(f"/api/categories/{category['id']}")
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["name"], category["name"])
        self.assertEqual(len(payload["links"]), 1)

        missing = self.client.get("/api/categories/999")
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json(), {"error": "Category not found"})

    def test_listing_is_sorted_by_order_index(self):
        categories = self.client.get("/api/categories").json()
        first = categories[0]
        response = self.client.put(
            f"/api/categories/{first['id']}", json={"order_index": 10}
        )
        self.assertEqual(response.status_code, 200)

        order = [c["order_index"] for c in self.client.get("/api/categories").json()]
        self.assertEqual(order, sorted(order))
        self.assertEqual(order[-1], 10)

    def test_update_category_keeps_omitted_fields(self):
        category = self.client.get("/api/categories").json()[1]
        response = self.client.put(
            f"/api/categories/{category['id']}",
            json={"description": "Partners", "name": ""},
        )
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["name"], category["name"])
        self.assertEqual(payload["icon"], category["icon"])
        self.assertEqual(payload["order_index"], category["order_index"])
        self.assertEqual(payload["description"], "Partners")

        cleared = self.client.put(
            f"/api/categories/{category['id']}", json={"description": None}
        )
        self.assertIsNone(cleared.json()["description"])

    def test_update_missing_category(self):
        response = self.client.put("/api/categories/999", json={"name": "X"})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Category not found"})

    def test_delete_category_cascades_to_links(self):
        category = self.client.get("/api/categories").json()[0]
        first = self._create_link(category["id"], title="One")
        self._create_link(category["id"], title="Two")

        response = self.client.delete(f"/api/categories/{category['id']}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"message": "Category deleted"})

        self.assertEqual(self.db.list_links(category["id"], active_only=False), [])
        self.assertEqual(self.client.get(f"/api/links/{first['id']}").status_code, 404)
        self.assertEqual(len(self.client.get("/api/categories").json()), 2)

        again = self.client.delete(f"/api/categories/{category['id']}")
        self.assertEqual(again.status_code, 404)

    def test_create_link_assigns_order_within_category(self):
        social, affiliations = self.client.get("/api/categories").json()[:2]
        first = self._create_link(social["id"], title="GitHub")
        second = self._create_link(social["id"], title="Mastodon")
        other = self._create_link(affiliations["id"], title="Shop")

        self.assertEqual(first["order_index"], 1)
        self.assertEqual(second["order_index"], 2)
        self.assertEqual(other["order_index"], 1)
        self.assertTrue(first["active"])
        self.assertEqual(first["description"], "")
        self.assertEqual(first["image_url"], "")

        links = self.client.get(f"/api/categories/{social['id']}").json()["links"]
        self.assertEqual([l["title"] for l in links], ["GitHub", "Mastodon"])

    def test_create_link_requires_fields(self):
        category = self.client.get("/api/categories").json()[0]
        for body in (
            {"title": "X", "url": "http://x"},
            {"category_id": category["id"], "url": "http://x"},
            {"category_id": category["id"], "title": "X", "url": ""},
        ):
            response = self.client.post("/api/links", json=body)
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.json(), {"error": "Missing required fields"})
        self.assertEqual(self.db.list_links(category["id"], active_only=False), [])

    def test_create_link_for_unknown_category(self):
        response = self.client.post(
            "/api/links",
            json={"category_id": 999, "title": "X", "url": "http://x"},
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Category not found"})
        self.assertEqual(self.db.list_links(999, active_only=False), [])

    def test_inactive_links_are_hidden_from_listing(self):
        category = self.client.get("/api/categories").json()[0]
        visible = self._create_link(category["id"], title="Visible")
        hidden = self._create_link(category["id"], title="Hidden")

        response = self.client.put(f"/api/links/{hidden['id']}", json={"active": False})
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["active"])

        listed = self.client.get("/api/categories").json()[0]["links"]
        self.assertEqual([l["id"] for l in listed], [visible["id"]])

        # Still reachable directly for editing.
        fetched = self.client.get(f"/api/links/{hidden['id']}")
        self.assertEqual(fetched.status_code, 200)
        self.assertEqual(fetched.json()["title"], "Hidden")

    def test_update_link_keeps_omitted_fields(self):
        category = self.client.get("/api/categories").json()[0]
        link = self._create_link(category["id"], title="Old", url="https://old.example")

        response = self.client.put(
            f"/api/links/{link['id']}",
            json={"title": "New", "url": None, "image_url": "https://img.example/a.png"},
        )
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertEqual(payload["title"], "New")
        self.assertEqual(payload["url"], "https://old.example")
        self.assertEqual(payload["image_url"], "https://img.example/a.png")
        self.assertEqual(payload["order_index"], link["order_index"])
        self.assertTrue(payload["active"])

        missing = self.client.put("/api/links/999", json={"title": "X"})
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json(), {"error": "Link not found"})

    def test_non_numeric_ids_are_not_found(self):
        for method, path, message in (
            ("GET", "/api/categories/abc", "Category not found"),
            ("PUT", "/api/categories/abc", "Category not found"),
            ("DELETE", "/api/categories/abc", "Category not found"),
            ("GET", "/api/links/abc", "Link not found"),
            ("PUT", "/api/links/abc", "Link not found"),
            ("DELETE", "/api/links/abc", "Link not found"),
        ):
            kwargs = {"json": {"name": "X", "title": "X"}} if method == "PUT" else {}
            response = self.client.request(method, path, **kwargs)
            self.assertEqual(response.status_code, 404, f"{method} {path}")
            self.assertEqual(response.json(), {"error": message})
        self.assertEqual(len(self.client.get("/api/categories").json()), 3)

    def test_numeric_text_fields_are_stored_as_text(self):
        response = self.client.post(
            "/api/categories", json={"name": 123, "description": 4.5}
        )
        self.assertEqual(response.status_code, 200, response.text)
        category = response.json()
        self.assertEqual(category["name"], "123")
        self.assertEqual(category["description"], "4.5")

        link = self.client.post(
            "/api/links",
            json={"category_id": category["id"], "title": 2024, "url": "http://x"},
        )
        self.assertEqual(link.status_code, 200, link.text)
        self.assertEqual(link.json()["title"], "2024")

        renamed = self.client.put(
            f"/api/links/{link.json()['id']}", json={"title": 7}
        )
        self.assertEqual(renamed.json()["title"], "7")

    def test_delete_link(self):
        category = self.client.get("/api/categories").json()[0]
        link = self._create_link(category["id"])

        response = self.client.delete(f"/api/links/{link['id']}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"message": "Link deleted"})

        again = self.client.delete(f"/api/links/{link['id']}")
        self.assertEqual(again.status_code, 404)
        self.assertEqual(again.json(), {"error": "Link not found"})


class InMemoryApiTests(ApiContractMixin, unittest.TestCase):
    def make_db(self):
        return InMemoryDbClient()


class SqliteApiTests(ApiContractMixin, unittest.TestCase):
    def make_db(self):
        return SqlDbClient("sqlite+pysqlite:///:memory:")

    def tearDown(self):
        self.db.close()


class AppSurfaceTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.app = create_app(db=self.db, settings=_settings())
        self.client = TestClient(self.app)

    def test_unmatched_route(self):
        response = self.client.get("/api/nothing-here")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Route not found"})

    def test_unsupported_method_is_reported_as_unmatched_route(self):
        response = self.client.patch("/api/links/1", json={})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Route not found"})

    def test_malformed_body_is_a_bad_request(self):
        response = self.client.post(
            "/api/categories",
            content="{not json",
            headers={"content-type": "application/json"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("error", response.json())

    def test_storage_failure_is_a_generic_server_error(self):
        client = TestClient(self.app, raise_server_exceptions=False)
        with patch.object(
            self.db, "list_categories", side_effect=RuntimeError("connection lost")
        ):
            response = client.get("/api/categories")
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"error": "Server error"})

    def test_default_static_dir_ships_with_package(self):
        app = create_app(db=InMemoryDbClient(), settings=Settings(_env_file=None))
        response = TestClient(app).get("/")
        self.assertEqual(response.status_code, 200)
        self.assertIn("text/html", response.headers["content-type"])

    def test_serves_front_end(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertIn("text/html", response.headers["content-type"])

        script = self.client.get("/static/app.js")
        self.assertEqual(script.status_code, 200)

    def test_cors_headers(self):
        response = self.client.get(
            "/api/categories", headers={"Origin": "https://elsewhere.example"}
        )
        self.assertEqual(response.headers.get("access-control-allow-origin"), "*")

    def test_shutdown_closes_storage_client(self):
        with patch.object(self.db, "close") as close:
            with TestClient(self.app):
                pass
        close.assert_called_once()


if __name__ == "__main__":
    unittest.main()
