"""Tests for login credential records."""

from kaito_auth.credentials import Level1Credentials, Level2Credentials


class TestLevel1Credentials:
    def test_payload_includes_optional_fields(self):
        creds = Level1Credentials("u", "e@x.com", "p", totp_secret="SECRET", proxy="http://proxy:1")
        assert creds.to_payload() == {
            "user_name": "u",
            "email": "e@x.com",
            "password": "p",
            "totp_secret": "SECRET",
            "proxy": "http://proxy:1",
        }

    def test_payload_omits_empty_optionals(self):
        creds = Level1Credentials("u", "e@x.com", "p")
        assert set(creds.to_payload()) == {"user_name", "email", "password"}

    def test_missing_fields(self):
        creds = Level1Credentials(user_name="u", password="  ")
        assert creds.missing_fields() == ["email", "password"]
        assert not creds.is_complete()

    def test_validate_email_and_proxy(self):
        creds = Level1Credentials("u", "not-an-email", "p", proxy="socks://x")
        problems = creds.validate()
        assert "email is not a valid address" in problems
        assert "proxy must be an http(s) URL" in problems


class TestLevel2Credentials:
    def test_payload_has_no_totp(self):
        creds = Level2Credentials("u", "e@x.com", "p", proxy="https://proxy:8080")
        payload = creds.to_payload()
        assert "totp_secret" not in payload
        assert payload["proxy"] == "https://proxy:8080"

    def test_valid_credentials(self):
        assert Level2Credentials("u", "e@x.com", "p").validate() == []
