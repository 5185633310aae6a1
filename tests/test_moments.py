"""
Tests for the addMoment and getMoments actions.

Tests cover:
- Moment creation and echoed fields
- Required field validation
- Rotation parsing on create and list
- Listing order (newest appended first)
- Empty and missing tables
- Store failures reported in the envelope
"""

import pytest

from moments.service import HEADER
from moments.storage import InMemoryTabularStore


def add_moment(client, name="Asha", message="Congratulations!", image_url="https://img.test/a.jpg", rotation=None):
    """Helper to create a moment via POST."""
    data = {"name": name, "message": message, "imageUrl": image_url}
    if rotation is not None:
        data["rotation"] = rotation
    return client.post("/", params={"action": "addMoment"}, data=data)


def get_moments(client):
    return client.get("/", params={"action": "getMoments"})


class TestAddMoment:
    """Test moment creation."""

    def test_add_moment_success(self, client):
        """Test a valid moment is echoed back verbatim."""
        response = add_moment(client, name="Asha", message="Best wishes", image_url="https://img.test/1.jpg")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["name"] == "Asha"
        assert data["message"] == "Best wishes"
        assert data["image"] == "https://img.test/1.jpg"
        assert data["rotation"] == 0
        assert isinstance(data["id"], int)
        assert data["timestamp"].endswith("Z")

    def test_add_moment_creates_table_with_header(self, client, stored_rows):
        """Test the first write creates the table with the fixed header row."""
        add_moment(client)

        rows = stored_rows()
        assert rows[0] == HEADER
        assert len(rows) == 2

    def test_add_moment_row_layout(self, client, stored_rows):
        """Test the appended row holds id, name, message, image, rotation, timestamp."""
        data = add_moment(client, rotation="15").json()

        row = stored_rows()[1]
        assert row == [
            data["id"],
            "Asha",
            "Congratulations!",
            "https://img.test/a.jpg",
            "15",
            data["timestamp"],
        ]

    def test_rotation_parsed_as_float(self, client):
        """Test rotation is echoed back as a float."""
        data = add_moment(client, rotation="45.5").json()

        assert data["success"] is True
        assert data["rotation"] == 45.5

    def test_rotation_defaults_to_zero(self, client, stored_rows):
        """Test omitted rotation is stored and echoed as 0."""
        data = add_moment(client).json()

        assert data["rotation"] == 0
        assert stored_rows()[1][4] == 0

    def test_non_numeric_rotation_echoed_as_zero(self, client):
        data = add_moment(client, rotation="sideways").json()

        assert data["success"] is True
        assert data["rotation"] == 0

    def test_query_string_params_accepted(self, client):
        """Test parameters may arrive in the query string."""
        response = client.post("/", params={
            "action": "addMoment",
            "name": "Ravi",
            "message": "Cheers",
            "imageUrl": "https://img.test/q.jpg",
        })

        data = response.json()
        assert data["success"] is True
        assert data["name"] == "Ravi"

    def test_body_overrides_query(self, client):
        """Test body fields win over query fields with the same name."""
        response = client.post(
            "/",
            params={"action": "addMoment", "name": "FromQuery"},
            data={"name": "FromBody", "message": "Hi", "imageUrl": "https://img.test/b.jpg"},
        )

        assert response.json()["name"] == "FromBody"


class TestAddMomentValidation:
    """Test required field validation."""

    @pytest.mark.parametrize("missing", ["name", "message", "imageUrl"])
    def test_missing_field_rejected(self, client, stored_rows, missing):
        """Test each required field is enforced and nothing is appended."""
        add_moment(client)
        rows_before = len(stored_rows())

        data = {"name": "Asha", "message": "Hi", "imageUrl": "https://img.test/a.jpg"}
        del data[missing]
        response = client.post("/", params={"action": "addMoment"}, data=data)

        assert response.status_code == 200
        assert response.json() == {"success": False, "message": "Missing required fields"}
        assert len(stored_rows()) == rows_before

    @pytest.mark.parametrize("empty", ["name", "message", "imageUrl"])
    def test_empty_field_rejected(self, client, tabular_store, empty):
        """Test empty strings count as missing and the store is never opened."""
        data = {"name": "Asha", "message": "Hi", "imageUrl": "https://img.test/a.jpg"}
        data[empty] = ""
        response = client.post("/", params={"action": "addMoment"}, data=data)

        assert response.json() == {"success": False, "message": "Missing required fields"}
        assert tabular_store.spreadsheets == {}


class TestGetMoments:
    """Test listing moments."""

    def test_empty_when_table_missing(self, client):
        """Test listing before any write returns an empty list."""
        response = get_moments(client)

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "No moments yet", "moments": []}

    def test_empty_when_only_header(self, client, tabular_store, settings):
        """Test a table holding only its header row lists as empty."""
        tabular_store.open(settings.SPREADSHEET_ID).create_table(settings.SHEET_NAME, HEADER)

        data = get_moments(client).json()
        assert data["success"] is True
        assert data["moments"] == []

    def test_newest_first(self, client):
        """Test moments appended A, B, C list as C, B, A."""
        for name in ("A", "B", "C"):
            add_moment(client, name=name)

        data = get_moments(client).json()
        assert data["success"] is True
        assert data["message"] == "Moments retrieved successfully"
        assert [m["name"] for m in data["moments"]] == ["C", "B", "A"]

    def test_order_is_storage_order_not_id(self, client, tabular_store, settings):
        """Test rows appended out of id order are listed by append order reversed."""
        table = tabular_store.open(settings.SPREADSHEET_ID).create_table(settings.SHEET_NAME, HEADER)
        table.append_row([300, "late", "m", "https://img.test/1.jpg", 0, "2025-01-15T10:03:00.000Z"])
        table.append_row([100, "early", "m", "https://img.test/2.jpg", 0, "2025-01-15T10:01:00.000Z"])

        moments = get_moments(client).json()["moments"]
        assert [m["id"] for m in moments] == [100, 300]

    def test_moment_fields(self, client):
        """Test listed moments carry id, name, message, image and rotation only."""
        created = add_moment(client, rotation="90").json()

        moment = get_moments(client).json()["moments"][0]
        assert moment == {
            "id": created["id"],
            "name": "Asha",
            "message": "Congratulations!",
            "image": "https://img.test/a.jpg",
            "rotation": 90.0,
        }

    def test_non_numeric_rotation_lists_as_zero(self, client, tabular_store, settings):
        """Test a stored non-numeric rotation projects to 0."""
        table = tabular_store.open(settings.SPREADSHEET_ID).create_table(settings.SHEET_NAME, HEADER)
        table.append_row([1, "Asha", "Hi", "https://img.test/a.jpg", "abc", "2025-01-15T10:00:00.000Z"])

        moment = get_moments(client).json()["moments"][0]
        assert moment["rotation"] == 0

    def test_short_rows_are_padded(self, client, tabular_store, settings):
        """Test rows missing trailing cells still project."""
        table = tabular_store.open(settings.SPREADSHEET_ID).create_table(settings.SHEET_NAME, HEADER)
        table.append_row([1, "Asha", "Hi", "https://img.test/a.jpg"])

        moment = get_moments(client).json()["moments"][0]
        assert moment["name"] == "Asha"
        assert moment["rotation"] == 0


class TestStoreFailures:
    """Test store errors are reported in the envelope."""

    @pytest.fixture
    def tabular_store(self) -> InMemoryTabularStore:
        return InMemoryTabularStore(create_missing=False)

    def test_add_moment_store_error(self, client):
        response = add_moment(client)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["message"].startswith("Error adding moment: ")
        assert "test-spreadsheet" in data["message"]

    def test_get_moments_store_error(self, client):
        response = get_moments(client)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["message"].startswith("Error fetching moments: ")


class TestRepeatedParams:
    """Test a repeated parameter keeps its first value."""

    def test_repeated_query_param(self, client):
        response = client.post("/", params=[
            ("action", "addMoment"),
            ("name", "First"),
            ("name", "Second"),
            ("message", "Hi"),
            ("imageUrl", "https://img.test/a.jpg"),
        ])

        assert response.json()["name"] == "First"

    def test_repeated_body_field(self, client):
        response = client.post("/", params={"action": "addMoment"}, data={
            "name": ["First", "Second"],
            "message": "Hi",
            "imageUrl": "https://img.test/a.jpg",
        })

        assert response.json()["name"] == "First"
