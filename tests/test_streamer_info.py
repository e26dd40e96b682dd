"""
Tests for streaming credential derivation.
"""

import copy
import dataclasses

import pytest

from tdma_http_core.exceptions import APIException
from tdma_http_core.streaming import (
    StreamerCredentials,
    StreamerInfo,
    get_streamer_info,
    timestamp_to_ms,
)


def sample_streamer_credentials(**overrides) -> StreamerCredentials:
    fields = dict(
        user_id="123456789",
        token="abc",
        company="AMER",
        segment="ADVNCED",
        cd_domain="A0001",
        user_group="ACCT",
        access_level="ACCT",
        authorized=True,
        timestamp=1528769903000,
        app_id="APPX",
        acl="AKBP",
    )
    fields.update(overrides)
    return StreamerCredentials(**fields)


class TestTimestampToMs:
    """Test the strict token timestamp parser."""

    def test_canonical_example(self) -> None:
        """Test the documented example converts to UTC epoch milliseconds."""
        assert timestamp_to_ms("2018-06-12T02:18:23+0000") == 1528769903000

    def test_epoch(self) -> None:
        """Test the epoch itself."""
        assert timestamp_to_ms("1970-01-01T00:00:00+0000") == 0

    def test_leap_day(self) -> None:
        """Test a leap day converts correctly."""
        assert timestamp_to_ms("2020-02-29T12:00:00+0000") == 1582977600000

    @pytest.mark.parametrize(
        "value",
        [
            "2018-06-12T02:18:23+000",
            "2018-06-12T02:18:23+00000",
            "2018-06-12T02:18:23Z",
            "",
            "2018-06-12T02:18:23+0100",
            "2018-06-12T02:18:23-0500",
        ],
    )
    def test_rejects_malformed(self, value) -> None:
        """Test wrong lengths and non-zero offsets fail."""
        with pytest.raises(APIException):
            timestamp_to_ms(value)

    def test_rejects_non_numeric_fields(self) -> None:
        """Test garbage in numeric positions fails."""
        with pytest.raises(APIException):
            timestamp_to_ms("20xx-06-12T02:18:23+0000")

    @pytest.mark.parametrize(
        "value",
        [
            "2018-13-12T02:18:23+0000",
            "2018-00-12T02:18:23+0000",
            "0000-06-12T02:18:23+0000",
        ],
    )
    def test_rejects_out_of_range_month_and_year(self, value) -> None:
        """Test impossible months and year zero fail instead of leaking ValueError."""
        with pytest.raises(APIException) as exc_info:
            timestamp_to_ms(value)
        assert isinstance(exc_info.value.cause, ValueError)

    @pytest.mark.parametrize(
        "value",
        [
            "2018-0_-12T02:18:23+0000",
            "2018-06-12T 2:18:23+0000",
            "2018-06-12T02:+8:23+0000",
            "2018-06-12T02:18:\u0663\u0663+0000",
        ],
    )
    def test_rejects_loose_digits(self, value) -> None:
        """Test underscores, spaces, signs and non-ASCII digits fail."""
        with pytest.raises(APIException):
            timestamp_to_ms(value)

    def test_time_fields_roll_over(self) -> None:
        """Test a leap second rolls into the next minute."""
        assert timestamp_to_ms("2018-06-12T02:18:60+0000") == 1528769940000

    def test_rejects_non_string(self) -> None:
        """Test non-string JSON values fail."""
        with pytest.raises(APIException):
            timestamp_to_ms(1528769903)


class TestEncodeCredentials:
    """Test the fixed-order credential encoder."""

    def test_fixed_order(self) -> None:
        """Test fields are emitted in the login order and percent-encoded."""
        info = StreamerInfo(
            credentials=sample_streamer_credentials(),
            url="wss://streamer.example.com/ws",
            primary_acct_id="123456789",
        )
        encoded = info.encode_credentials()
        assert encoded == (
            "userid%3D123456789%26token%3Dabc%26company%3DAMER%26segment%3DADVNCED"
            "%26cddomain%3DA0001%26usergroup%3DACCT%26accesslevel%3DACCT"
            "%26authorized%3DY%26acl%3DAKBP%26timestamp%3D1528769903000%26appid%3DAPPX"
        )
        assert info.credentials_encoded == encoded

    def test_not_authorized(self) -> None:
        """Test authorized renders as N when false."""
        info = StreamerInfo(
            credentials=sample_streamer_credentials(authorized=False),
            url="wss://x/ws",
            primary_acct_id="1",
        )
        assert "authorized%3DN%26" in info.encode_credentials()

    def test_special_characters_encoded(self) -> None:
        """Test reserved characters inside values are escaped."""
        info = StreamerInfo(
            credentials=sample_streamer_credentials(token="a/b+c=d&e"),
            url="wss://x/ws",
            primary_acct_id="1",
        )
        assert "token%3Da%2Fb%2Bc%3Dd%26e%26" in info.encode_credentials()

    def test_credentials_immutable(self) -> None:
        """Test streamer credentials cannot be changed after construction."""
        creds = sample_streamer_credentials()
        with pytest.raises(dataclasses.FrozenInstanceError):
            creds.token = "other"


class TestGetStreamerInfo:
    """Test deriving StreamerInfo from the principals document."""

    def test_derives_info(self, credentials, principals) -> None:
        """Test every field is taken from the document."""
        seen = []

        def fetch(creds):
            seen.append(creds)
            return principals

        info = get_streamer_info(credentials, fetch_principals=fetch)
        assert seen == [credentials]
        assert info.url == "wss://streamer-ws.example.com/ws"
        assert info.primary_acct_id == "123456789"
        c = info.credentials
        assert c.user_id == "123456789"
        assert c.company == "AMER"
        assert c.segment == "ADVNCED"
        assert c.cd_domain == "A000000012345678"
        assert c.token == "tok/en+1"
        assert c.user_group == "ACCT"
        assert c.access_level == "ACCT"
        assert c.authorized is True
        assert c.timestamp == 1528769903000
        assert c.app_id == "APPX"
        assert c.acl == "AKBPCFDTESF7G1"
        assert info.credentials_encoded.startswith("userid%3D123456789%26token%3Dtok%2Fen%2B1%26")
        assert info.credentials_encoded.endswith("%26appid%3DAPPX")

    def test_uses_first_account(self, credentials, principals) -> None:
        """Test only the first account is used when several exist."""
        principals["primaryAccountId"] = "987654321"
        info = get_streamer_info(credentials, fetch_principals=lambda _: principals)
        assert info.credentials.user_id == "123456789"
        assert info.credentials.company == "AMER"
        assert info.primary_acct_id == "987654321"

    def test_numeric_account_id(self, credentials, principals) -> None:
        """Test numeric ids are rendered as strings."""
        principals["accounts"][0]["accountId"] = 123456789
        info = get_streamer_info(credentials, fetch_principals=lambda _: principals)
        assert info.credentials.user_id == "123456789"

    @pytest.mark.parametrize("key", ["accounts", "streamerInfo"])
    def test_missing_top_level_key(self, credentials, principals, key) -> None:
        """Test a missing top-level key fails with an API error."""
        del principals[key]
        with pytest.raises(APIException, match=key):
            get_streamer_info(credentials, fetch_principals=lambda _: principals)

    @pytest.mark.parametrize(
        "path",
        [
            ("accounts", 0, "company"),
            ("streamerInfo", "token"),
            ("streamerInfo", "streamerSocketUrl"),
            ("primaryAccountId",),
        ],
    )
    def test_missing_field(self, credentials, principals, path) -> None:
        """Test a missing field fails with the cause attached."""
        document = copy.deepcopy(principals)
        target = document
        for key in path[:-1]:
            target = target[key]
        del target[path[-1]]
        with pytest.raises(APIException) as exc_info:
            get_streamer_info(credentials, fetch_principals=lambda _: document)
        assert isinstance(exc_info.value.cause, KeyError)
        assert "StreamerInfo" in str(exc_info.value)

    def test_empty_accounts(self, credentials, principals) -> None:
        """Test an empty accounts list fails."""
        principals["accounts"] = []
        with pytest.raises(APIException) as exc_info:
            get_streamer_info(credentials, fetch_principals=lambda _: principals)
        assert isinstance(exc_info.value.cause, IndexError)

    def test_mistyped_field(self, credentials, principals) -> None:
        """Test a field of the wrong JSON type fails."""
        principals["streamerInfo"]["token"] = {"value": "abc"}
        with pytest.raises(APIException) as exc_info:
            get_streamer_info(credentials, fetch_principals=lambda _: principals)
        assert isinstance(exc_info.value.cause, TypeError)

    def test_bad_timestamp(self, credentials, principals) -> None:
        """Test a malformed token timestamp fails."""
        principals["streamerInfo"]["tokenTimestamp"] = "2018-06-12T02:18:23+0100"
        with pytest.raises(APIException, match="timestamp"):
            get_streamer_info(credentials, fetch_principals=lambda _: principals)

    def test_out_of_range_timestamp(self, credentials, principals) -> None:
        """Test an impossible month surfaces as APIException."""
        principals["streamerInfo"]["tokenTimestamp"] = "2018-13-12T02:18:23+0000"
        with pytest.raises(APIException, match="timestamp"):
            get_streamer_info(credentials, fetch_principals=lambda _: principals)
