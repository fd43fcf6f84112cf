"""
Tests for application startup and shutdown.
"""
import pytest

from radiocalico.errors import SchemaInitError
from radiocalico.main import app, lifespan

from conftest import make_settings


async def test_startup_creates_schema_and_backend(tmp_path, monkeypatch):
    monkeypatch.setattr("radiocalico.main.settings", make_settings(f"sqlite:///{tmp_path / 'app.db'}"))

    async with lifespan(app):
        backend = app.state.backend
        assert backend.kind == "sqlite"
        assert await backend.ping()

    assert (tmp_path / "app.db").exists()


async def test_startup_aborts_when_schema_fails(tmp_path, monkeypatch):
    monkeypatch.setattr(
        "radiocalico.main.settings",
        make_settings(f"sqlite:///{tmp_path / 'missing' / 'app.db'}"),
    )

    with pytest.raises(SchemaInitError):
        async with lifespan(app):
            pass
