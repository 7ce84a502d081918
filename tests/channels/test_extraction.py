import pytest

from chatbridge.channels.extraction import extract_chatroom_id


class TestExtractChatroomId:
    @pytest.mark.parametrize(
        "payload",
        [
            {"chatroom": {"id": 5551}},
            {"chatroom_id": 5551},
            {"data": [{"chatroom": {"id": 5551}}]},
            {"data": [{"slug": "x"}, {"chatroom_id": 5551}]},
            {"data": {"chatroom": {"id": 5551}}},
            {"chatroom": {"id": 5551.0}},
        ],
    )
    def test_known_shapes(self, payload):
        assert extract_chatroom_id(payload) == 5551

    def test_nested_chatroom_takes_precedence(self):
        payload = {"chatroom": {"id": 1}, "chatroom_id": 2, "data": {"chatroom_id": 3}}
        assert extract_chatroom_id(payload) == 1

    def test_first_list_hit_wins(self):
        payload = {"data": [{"chatroom_id": 7}, {"chatroom_id": 8}]}
        assert extract_chatroom_id(payload) == 7

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"chatroom": {"id": "5551"}},
            {"chatroom": {"id": True}},
            {"chatroom_id": None},
            {"chatroom_id": 1.5},
            {"data": []},
            {"message": "Request blocked by security policy."},
            [],
            "5551",
            None,
        ],
    )
    def test_missing_or_non_numeric(self, payload):
        assert extract_chatroom_id(payload) is None
