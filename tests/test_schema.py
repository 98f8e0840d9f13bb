"""
Tests for boundary validation of upstream payloads.
"""

import pytest

from gityap.errors import UpstreamError, ValidationError
from gityap.models import ActivityProfile, ChannelProfile
from gityap.schema import validate_channel_payload, validate_repo_list, validate_user_payload
from tests.conftest import user_payload


class TestUserPayload:
    """``/users/{handle}`` bodies."""

    def test_valid(self):
        assert validate_user_payload(user_payload("octocat", followers=3)) == []

    def test_not_an_object(self):
        assert validate_user_payload(["octocat"]) == ["Payload must be an object"]

    def test_missing_login(self):
        data = user_payload("octocat")
        data["login"] = "  "

        assert "Field 'login' must be a non-empty string" in validate_user_payload(data)

    def test_missing_counter(self):
        data = user_payload("octocat")
        del data["public_repos"]

        assert validate_user_payload(data) == ["Missing required field: public_repos"]

    @pytest.mark.parametrize("value", [-1, "12", 1.5, True, None])
    def test_bad_counter(self, value):
        data = user_payload("octocat")
        data["followers"] = value

        assert validate_user_payload(data) == ["Field 'followers' must be a non-negative integer"]

    def test_null_optional_strings_are_fine(self):
        data = user_payload("octocat")
        data["avatar_url"] = None

        assert validate_user_payload(data) == []

    def test_profile_from_invalid_payload(self):
        with pytest.raises(ValidationError) as exc_info:
            ActivityProfile.from_payload({"login": "octocat"})

        assert isinstance(exc_info.value, UpstreamError)
        assert len(exc_info.value.errors) == 3
        assert exc_info.value.message.startswith("Invalid user payload")

    def test_profile_from_payload(self):
        profile = ActivityProfile.from_payload(user_payload("octocat", followers=3, public_repos=8), commit_count=4)

        assert profile.handle == "octocat"
        assert profile.follower_count == 3
        assert profile.public_repo_count == 8
        assert profile.commit_count == 4
        assert profile.profile_url == "https://github.test/octocat"


class TestChannelPayload:
    """Channel collaborator payloads."""

    def test_camel_case(self):
        data = {"title": "Durov", "username": "durov", "postCount": 5, "participantsCount": 7}

        assert validate_channel_payload(data) == []

    def test_snake_case(self):
        data = {"username": "durov", "post_count": 5, "participants_count": 7}

        assert validate_channel_payload(data) == []
        assert ChannelProfile.from_payload(data).participant_count == 7

    def test_missing_counters(self):
        errors = validate_channel_payload({"username": "durov"})

        assert errors == ["Missing required field: postCount", "Missing required field: participantsCount"]

    def test_bad_title(self):
        data = {"username": "durov", "title": 5, "postCount": 0, "participantsCount": 0}

        assert validate_channel_payload(data) == ["Field 'title' must be a string if provided"]

    def test_profile_from_payload(self):
        channel = ChannelProfile.from_payload({"username": "@durov", "postCount": 5, "participantsCount": 7})

        assert channel.handle == "durov"
        assert channel.title == "durov"
        assert channel.avatar_url == "https://t.me/i/userpic/320/durov.jpg"

    def test_profile_from_invalid_payload(self):
        with pytest.raises(ValidationError):
            ChannelProfile.from_payload({"username": "durov", "postCount": -3, "participantsCount": 0})


class TestRepoList:
    """One page of a repository listing."""

    def test_valid(self):
        assert validate_repo_list([{"name": "a"}, {"name": "b", "fork": True}]) == []

    def test_empty(self):
        assert validate_repo_list([]) == []

    def test_not_a_list(self):
        assert validate_repo_list({"message": "Not Found"}) == ["Repository page must be an array"]

    def test_nameless_entry(self):
        assert validate_repo_list([{"name": "a"}, {"id": 2}]) == ["Repository #1 has no name"]
