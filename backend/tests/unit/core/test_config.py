import pytest

from bountyexpo.core.config import Settings, parse_list
from bountyexpo.core.middleware import NO_STORE_PATH, bounty_id_from_path


class TestParseList:

    @pytest.mark.parametrize("raw", ["5,10,25", " 5, 10 ,25 ", "[5, 10, 25]"])
    def test_int_lists(self, raw):
        assert parse_list(raw, int) == [5, 10, 25]

    def test_cors_origins(self):
        assert parse_list('["http://a.test", "http://b.test"]') == ["http://a.test", "http://b.test"]
        assert parse_list("") == []

    def test_settings_properties(self):
        settings = Settings(CORS_ORIGINS_STR="http://a.test,http://b.test", DISTANCE_FILTER_OPTIONS_STR="1,2")

        assert settings.CORS_ORIGINS == ["http://a.test", "http://b.test"]
        assert settings.DISTANCE_FILTER_OPTIONS == [1, 2]

    def test_dev_mode(self):
        assert Settings(ENVIRONMENT="test").is_dev_mode()
        assert not Settings(ENVIRONMENT="production").is_dev_mode()


class TestMiddlewareHelpers:

    def test_bounty_id_from_path(self):
        bounty_id = "3f2b8c1e-0d4a-4b7e-9c6f-1a2b3c4d5e6f"

        assert bounty_id_from_path(f"/api/v1/bounties/{bounty_id}/archive") == bounty_id
        assert bounty_id_from_path(f"/api/v1/bounties/{bounty_id}") == bounty_id
        assert bounty_id_from_path("/api/v1/bounties/feed") == ""

    def test_no_store_paths(self):
        assert NO_STORE_PATH.match("/api/v1/wallet")
        assert NO_STORE_PATH.match("/api/v1/wallet/transactions")
        assert NO_STORE_PATH.match("/api/v1/bounties/abc/escrow")
        assert not NO_STORE_PATH.match("/api/v1/bounties/feed")
