import create_admin
from models.user import User


def test_create_admin_interactively(monkeypatch, db, session_factory):
    answers = iter(["support@marketplace.com", "Sue", "Port", "6"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(answers))
    monkeypatch.setattr(create_admin.getpass, "getpass", lambda prompt="": "long-enough-pass")
    monkeypatch.setattr(create_admin, "SessionLocal", session_factory)
    monkeypatch.setattr(create_admin, "create_tables", lambda: None)

    create_admin.create_admin()

    user = db.query(User).filter(User.email == "support@marketplace.com").one()
    assert user.admin_role == "SUPPORT_ADMIN"


def test_short_password_creates_nothing(monkeypatch, db, session_factory):
    monkeypatch.setattr("builtins.input", lambda prompt="": "short@marketplace.com")
    monkeypatch.setattr(create_admin.getpass, "getpass", lambda prompt="": "short")
    monkeypatch.setattr(create_admin, "SessionLocal", session_factory)
    monkeypatch.setattr(create_admin, "create_tables", lambda: None)

    create_admin.create_admin()

    assert db.query(User).count() == 0
