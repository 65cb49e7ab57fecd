import mongomock
import pytest
from fastapi.testclient import TestClient

import database
import main
from schemas import Form


@pytest.fixture
def mongo_db(monkeypatch):
    """In-memory MongoDB swapped in for the module-level handle."""
    db = mongomock.MongoClient()["form_builder_test"]
    monkeypatch.setattr(database, "db", db)
    return db


@pytest.fixture
def client(mongo_db):
    main.app.dependency_overrides[main.verify_admin] = lambda: "test-admin"
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(mongo_db):
    with TestClient(main.app) as test_client:
        yield test_client


@pytest.fixture
def country_form():
    return Form.model_validate({
        "title": "Travel",
        "fields": [
            {
                "label": "Country",
                "name": "country",
                "type": "select",
                "required": True,
                "order": 0,
                "options": [
                    {"label": "United States", "value": "us"},
                    {
                        "label": "Other",
                        "value": "other",
                        "nestedFields": [
                            {"label": "Details", "name": "details", "type": "text", "required": True},
                        ],
                    },
                ],
            },
        ],
    })
