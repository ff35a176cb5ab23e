"""Tests for tolerant response records."""

from ged_client.schemas import Envelope, Profile, ProfileMember


class TestEnvelope:
    """Tests for Envelope decoding."""

    def test_status_and_data(self):
        envelope = Envelope.from_api_response({"status": "ok", "data": [{"id": 1}]})
        assert envelope.status == "ok"
        assert envelope.records == [{"id": 1}]

    def test_bare_list(self):
        assert Envelope.from_api_response([{"id": 1}]).records == [{"id": 1}]

    def test_missing_data(self):
        envelope = Envelope.from_api_response({"status": "error"})
        assert envelope.data is None
        assert envelope.records == []

    def test_single_object_data_wrapped(self):
        assert Envelope.from_api_response({"data": {"id": 1}}).records == [{"id": 1}]

    def test_none(self):
        assert Envelope.from_api_response(None).records == []

    def test_unknown_fields_ignored(self):
        envelope = Envelope.from_api_response({"status": "ok", "data": [], "meta": {"x": 1}})
        assert envelope.status == "ok"


class TestProfileMember:
    """Tests for ProfileMember."""

    def test_build_full_name(self):
        member = ProfileMember.build("bob", "Bob", "Builder", "bob@example.com")
        assert member.to_api_payload() == {
            "userName": "bob",
            "fullName": "Bob Builder",
            "firstname": "Bob",
            "lastname": "Builder",
            "email": "bob@example.com",
        }

    def test_build_without_names(self):
        member = ProfileMember.build("bob")
        assert member.full_name == ""
        assert member.firstname == ""
        assert member.email == ""

    def test_build_last_name_only(self):
        assert ProfileMember.build("bob", last_name="Builder").full_name == "Builder"


class TestProfile:
    """Tests for Profile."""

    def test_from_api_response(self, sample_profile):
        profile = Profile.from_api_response(sample_profile)
        assert profile.display_name == "accounting"
        assert [u["userName"] for u in profile.users] == ["alice", "bob"]
        assert profile.jupiter_right == {"read": True, "write": False}

    def test_without_member_removes_all_entries(self):
        profile = Profile.from_api_response({
            "displayName": "x",
            "users": [{"userName": "bob"}, {"userName": "amy"}, {"userName": "bob"}],
        })
        assert profile.without_member("bob") == [{"userName": "amy"}]

    def test_without_member_keeps_other_entries_verbatim(self):
        amy = {"userName": "amy", "fullName": None, "email": None, "id": "u-7"}
        profile = Profile.from_api_response({
            "displayName": "x",
            "users": [amy, "legacy-entry", {"userName": "bob"}],
        })
        assert profile.without_member("bob") == [amy, "legacy-entry"]

    def test_users_keyed_by_index(self):
        profile = Profile.from_api_response({
            "displayName": "x",
            "users": {"0": {"userName": "amy"}, "2": {"userName": "bob"}},
        })
        assert profile.users == [{"userName": "amy"}, {"userName": "bob"}]

    def test_missing_users(self):
        assert Profile.from_api_response({"displayName": "x"}).users == []
