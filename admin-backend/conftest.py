import os
import shutil

import pytest
from fastapi.testclient import TestClient

import main
from config_manager import ConfigManager
from db_manager import DatabaseManager

SEED_DIR = os.path.join(os.path.dirname(__file__), "data")
SEED_FILES = [name for name in os.listdir(SEED_DIR) if name.startswith("config-")]


class StubEmailService:
    """Records verification emails instead of calling Brevo"""

    def __init__(self, result: bool = True):
        self.enabled = result
        self.result = result
        self.sent = []

    def send_verification_email(self, to_email, first_name, token):
        self.sent.append({"to": to_email, "first_name": first_name, "token": token})
        return self.result


@pytest.fixture
def data_dir(tmp_path):
    target = tmp_path / "data"
    target.mkdir()
    for name in SEED_FILES:
        shutil.copy(os.path.join(SEED_DIR, name), target / name)
    return str(target)


@pytest.fixture
def db(data_dir):
    return DatabaseManager(base_dir=data_dir)


@pytest.fixture
def config_db(db):
    return ConfigManager(db)


@pytest.fixture
def email_stub():
    return StubEmailService()


@pytest.fixture
def client(monkeypatch, db, config_db, email_stub):
    monkeypatch.setattr(main, "db", db)
    monkeypatch.setattr(main, "config_db", config_db)
    monkeypatch.setattr(main, "email_service", email_stub)
    with TestClient(main.app) as test_client:
        yield test_client
