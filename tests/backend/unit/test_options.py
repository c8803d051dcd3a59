"""
Unit tests for core.options module.
Tests key normalisation, defaults and path resolution of the ConfigStore.
"""
from pathlib import Path

from arklet.config import Settings
from arklet.core.options import ConfigStore, normalize_key


class TestNormalizeKey:
    def test_spaces_underscores_and_dashes_are_equivalent(self):
        assert normalize_key("frame guard") == "frame guard"
        assert normalize_key("frame_guard") == "frame guard"
        assert normalize_key("Frame-Guard") == "frame guard"
        assert normalize_key("  FRAME   guard ") == "frame guard"

    def test_hook_style_keys_keep_their_colon(self):
        assert normalize_key("pre:routes") == "pre:routes"
        assert normalize_key("Pre:BodyParser") == "pre:bodyparser"

    def test_favico_is_an_alias_for_favicon(self):
        assert normalize_key("favico") == "favicon"
        store = ConfigStore()
        store.set("favico", "public/favicon.ico")
        assert store.get("favicon") == "public/favicon.ico"


class TestConfigStore:
    def test_get_returns_declared_default_when_unset(self):
        store = ConfigStore({"compress": True})
        assert store.get("compress") is True

    def test_set_overwrites_default_without_type_checking(self):
        store = ConfigStore({"compress": True})
        store.set("compress", "no thanks")
        assert store.get("compress") == "no thanks"

    def test_unknown_key_returns_none(self):
        store = ConfigStore()
        assert store.get("does not exist") is None
        assert store.get("does not exist", 42) == 42

    def test_set_to_none_is_still_set(self):
        store = ConfigStore({"logger": ":method"})
        store.set("logger", None)
        assert store.get("logger") is None
        assert store.is_set("logger")

    def test_normalised_keys_share_storage(self):
        store = ConfigStore()
        store.set("admin_path", "cms")
        assert store.get("Admin Path") == "cms"
        assert "admin-path" in store

    def test_functions_are_stored_as_values(self):
        store = ConfigStore()

        def routes(router):
            return None

        store.set("routes", routes)
        assert store.get("routes") is routes

    def test_options_bulk_sets_and_merges_defaults(self):
        store = ConfigStore({"name": "Arklet", "compress": True})
        merged = store.options({"compress": False, "headless": True})
        assert merged == {"name": "Arklet", "compress": False, "headless": True}

    def test_is_set_ignores_defaults(self):
        store = ConfigStore({"compress": True})
        assert not store.is_set("compress")

    def test_get_path_resolves_against_module_root(self, tmp_path):
        store = ConfigStore()
        store.set("module root", tmp_path)
        store.set("favicon", "public/favicon.ico")
        assert store.get_path("favicon") == tmp_path / "public" / "favicon.ico"

    def test_get_path_keeps_absolute_paths(self, tmp_path):
        store = ConfigStore()
        store.set("favicon", str(tmp_path / "f.ico"))
        assert store.get_path("favicon") == Path(tmp_path / "f.ico")

    def test_get_path_unset_returns_none(self):
        assert ConfigStore().get_path("favicon") is None


class TestSettings:
    def test_settings_read_environment(self, monkeypatch):
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("COOKIE_SECRET", "s3cret")
        monkeypatch.setenv("ENV", "production")
        options = Settings().as_options()
        assert options["port"] == 8080
        assert options["cookie secret"] == "s3cret"
        assert options["env"] == "production"
        assert options["cookie signin"] is False

    def test_settings_defaults(self, monkeypatch):
        for name in ("PORT", "ENV", "NODE_ENV", "DATABASE_URL"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings()
        assert settings.port is None
        assert settings.env == "development"
        assert settings.database_url == "sqlite://db.sqlite3"
