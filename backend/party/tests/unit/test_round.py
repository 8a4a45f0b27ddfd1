import random

import pytest

from party.logic.enums import ErrorCode, RoomStatus
from party.logic.exceptions import InvalidActionError
from party.logic.round import (
    add_player,
    cast_vote,
    expire_phase,
    play_card,
    post_chat,
    remove_player,
    select_prompts,
    start_game,
    update_settings,
    voting_complete,
)
from party.logic.settings import GameSettings
from party.tests.helpers import TEST_PROMPTS, make_catalog, make_room

NOW = 1_000.0


def _start(room, settings, seed=7):
    start_game(room, room.host_id, make_catalog(5), settings, NOW, random.Random(seed))


def _play_all(room, settings, player_ids=None):
    for player_id in player_ids or list(room.players):
        card = room.players[player_id].hand[0]
        play_card(room, player_id, card.instance_id, settings, NOW)


def _all_instance_ids(room):
    ids = [card.instance_id for card in room.deck]
    for player in room.players.values():
        ids.extend(card.instance_id for card in player.hand)
    ids.extend(submission.card.instance_id for submission in room.submissions)
    return ids


class TestSelectPrompts:
    def test_default_slice_uses_default_total(self, settings):
        assert select_prompts(None, [], TEST_PROMPTS, settings) == list(TEST_PROMPTS[:2])

    def test_custom_prompts_replace_defaults(self, settings):
        assert select_prompts(5, ["a", "b"], TEST_PROMPTS, settings) == ["a", "b"]

    def test_total_is_clamped(self, settings):
        assert select_prompts(-3, [], TEST_PROMPTS, settings) == list(TEST_PROMPTS[:1])
        many = [f"p{i}" for i in range(80)]
        assert len(select_prompts(1000, many, TEST_PROMPTS, settings)) == settings.max_prompt_total


class TestMembership:
    def test_first_player_is_host(self):
        room = make_room(("alice", "bob"))
        assert room.host_id == "alice"
        assert room.players["alice"].is_host
        assert not room.players["bob"].is_host

    def test_rejoin_renames_without_duplicating(self, settings):
        room = make_room(("alice",))
        created = add_player(room, "alice", "Alicia", settings)
        assert created is False
        assert room.player_count == 1
        assert room.players["alice"].display_name == "Alicia"

    def test_host_migrates_to_first_remaining_player(self, settings):
        room = make_room(("alice", "bob", "carol"))

        remove_player(room, "alice", settings, NOW)

        assert room.host_id == "bob"
        assert room.players["bob"].is_host
        assert sum(p.is_host for p in room.players.values()) == 1

    def test_removing_unknown_player_is_noop(self, settings):
        room = make_room(("alice",))
        assert remove_player(room, "ghost", settings, NOW) is False
        assert room.player_count == 1

    def test_last_player_leaving_empties_room(self, settings):
        room = make_room(("alice",))
        remove_player(room, "alice", settings, NOW)
        assert room.is_empty
        assert room.host_id is None

    def test_mid_game_join_is_dealt_a_hand(self, settings):
        room = make_room(("alice", "bob"))
        _start(room, settings)
        remaining = len(room.deck)

        add_player(room, "carol", "Carol", settings)

        assert 0 < len(room.players["carol"].hand) == min(settings.hand_size, remaining)
        ids = _all_instance_ids(room)
        assert len(ids) == len(set(ids))


class TestStartGame:
    def test_deals_full_unique_hands(self, settings):
        room = make_room(("alice", "bob", "carol"))
        _start(room, settings)

        assert room.status == RoomStatus.PLAYING
        assert room.current_prompt_index == 0
        assert room.current_prompt == TEST_PROMPTS[0]
        assert room.turn_deadline == NOW + settings.turn_duration_seconds
        assert room.vote_deadline is None
        for player in room.players.values():
            assert len(player.hand) == settings.hand_size
            assert player.played_card_id is None
        ids = _all_instance_ids(room)
        assert len(ids) == len(set(ids))

    def test_deck_length_is_multiple_of_catalog(self, settings):
        room = make_room(("alice", "bob", "carol"))
        _start(room, settings)
        dealt = 3 * settings.hand_size
        assert (len(room.deck) + dealt) % 5 == 0

    def test_non_host_cannot_start(self, settings):
        room = make_room(("alice", "bob"))
        with pytest.raises(InvalidActionError) as exc_info:
            start_game(room, "bob", make_catalog(), settings, NOW)
        assert exc_info.value.surface is False
        assert room.status == RoomStatus.WAITING

    def test_single_player_cannot_start(self, settings):
        room = make_room(("alice",))
        with pytest.raises(InvalidActionError) as exc_info:
            _start(room, settings)
        assert exc_info.value.surface is True
        assert exc_info.value.code == ErrorCode.NOT_ENOUGH_PLAYERS

    def test_cannot_start_while_playing(self, settings):
        room = make_room(("alice", "bob"))
        _start(room, settings)
        with pytest.raises(InvalidActionError):
            _start(room, settings)

    def test_phase_version_increases(self, settings):
        room = make_room(("alice", "bob"))
        before = room.phase_version
        _start(room, settings)
        assert room.phase_version > before


class TestPlayCard:
    def test_play_moves_card_to_submission_and_refills(self, settings):
        room = make_room(("alice", "bob", "carol"))
        _start(room, settings)
        card = room.players["alice"].hand[2]
        deck_before = len(room.deck)

        play_card(room, "alice", card.instance_id, settings, NOW)

        alice = room.players["alice"]
        assert alice.played_card_id == card.instance_id
        assert card not in alice.hand
        assert len(alice.hand) == settings.hand_size
        assert len(room.deck) == deck_before - 1
        assert room.submission_of("alice").card == card
        assert room.status == RoomStatus.PLAYING

    def test_second_play_in_same_round_rejected(self, settings):
        room = make_room(("alice", "bob", "carol"))
        _start(room, settings)
        _play_all(room, settings, ["alice"])
        with pytest.raises(InvalidActionError, match="already played"):
            _play_all(room, settings, ["alice"])
        assert len(room.submissions) == 1

    def test_card_not_in_hand_rejected(self, settings):
        room = make_room(("alice", "bob"))
        _start(room, settings)
        bob_card = room.players["bob"].hand[0]
        with pytest.raises(InvalidActionError, match="not in hand"):
            play_card(room, "alice", bob_card.instance_id, settings, NOW)

    def test_play_outside_playing_rejected(self, settings):
        room = make_room(("alice", "bob"))
        with pytest.raises(InvalidActionError):
            play_card(room, "alice", "meme0-0", settings, NOW)

    def test_no_refill_when_deck_is_empty(self, settings):
        room = make_room(("alice", "bob"))
        _start(room, settings)
        room.deck = []
        _play_all(room, settings, ["alice"])
        assert len(room.players["alice"].hand) == settings.hand_size - 1

    def test_last_submission_opens_voting(self, settings):
        room = make_room(("alice", "bob"))
        _start(room, settings)
        version = room.phase_version

        _play_all(room, settings)

        assert room.status == RoomStatus.VOTING
        assert room.turn_deadline is None
        assert room.vote_deadline == NOW + settings.vote_duration_seconds
        assert room.phase_version == version + 1
        assert len(room.submissions) == room.player_count


class TestVoting:
    @pytest.fixture
    def voting_room(self, settings):
        room = make_room(("alice", "bob", "carol"))
        _start(room, settings)
        _play_all(room, settings)
        return room

    def test_self_vote_rejected(self, voting_room, settings):
        with pytest.raises(InvalidActionError, match="own submission"):
            cast_vote(voting_room, "alice", "alice", settings, NOW)
        assert voting_room.vote_registry == {}

    def test_vote_for_missing_submission_rejected(self, voting_room, settings):
        with pytest.raises(InvalidActionError):
            cast_vote(voting_room, "alice", "nobody", settings, NOW)

    def test_vote_change_is_not_double_counted(self, voting_room, settings):
        cast_vote(voting_room, "alice", "bob", settings, NOW)
        cast_vote(voting_room, "alice", "carol", settings, NOW)

        assert voting_room.submission_of("bob").vote_count == 0
        assert voting_room.submission_of("carol").vote_count == 1
        assert voting_room.vote_registry == {"alice": "carol"}
        assert voting_room.status == RoomStatus.VOTING

    def test_vote_outside_voting_rejected(self, settings):
        room = make_room(("alice", "bob"))
        _start(room, settings)
        with pytest.raises(InvalidActionError):
            cast_vote(room, "alice", "bob", settings, NOW)

    def test_all_votes_finish_round_and_score(self, voting_room, settings):
        cast_vote(voting_room, "alice", "bob", settings, NOW)
        cast_vote(voting_room, "carol", "bob", settings, NOW)
        cast_vote(voting_room, "bob", "alice", settings, NOW)

        scores = {pid: p.score for pid, p in voting_room.players.items()}
        assert scores == {"alice": 0, "bob": 1, "carol": 0}
        assert voting_room.status == RoomStatus.PLAYING
        assert voting_room.current_prompt_index == 1
        assert voting_room.submissions == []
        assert voting_room.vote_registry == {}
        for player in voting_room.players.values():
            assert player.played_card_id is None
            assert player.hand

    def test_tied_owners_all_score(self, settings):
        ids = ("x", "y", "z", "p1", "p2", "p3", "p4")
        room = make_room(ids)
        _start(room, settings)
        _play_all(room, settings)

        ballots = {"x": "y", "p1": "y", "p2": "y", "y": "x", "p3": "x", "p4": "x", "z": "p1"}
        for voter, target in ballots.items():
            cast_vote(room, voter, target, settings, NOW)

        scores = {pid: p.score for pid, p in room.players.items()}
        assert scores["x"] == 1
        assert scores["y"] == 1
        assert scores["p1"] == 0
        assert sum(scores.values()) == 2


class TestPromptExhaustion:
    def test_single_prompt_game_finishes(self, settings):
        room = make_room(("alice", "bob"), prompts=["Only prompt"])
        _start(room, settings)
        _play_all(room, settings)
        cast_vote(room, "alice", "bob", settings, NOW)
        cast_vote(room, "bob", "alice", settings, NOW)

        assert room.status == RoomStatus.FINISHED
        assert room.current_prompt_index == 0
        assert room.turn_deadline is None
        assert room.vote_deadline is None
        assert room.submissions == []
        for player in room.players.values():
            assert player.hand == []
            assert player.score == 1

    def test_restart_after_finish_resets_scores(self, settings):
        room = make_room(("alice", "bob"), prompts=["Only prompt"])
        _start(room, settings)
        _play_all(room, settings)
        cast_vote(room, "alice", "bob", settings, NOW)
        cast_vote(room, "bob", "alice", settings, NOW)

        _start(room, settings, seed=8)

        assert room.status == RoomStatus.PLAYING
        assert room.current_prompt_index == 0
        assert all(p.score == 0 for p in room.players.values())


class TestDepartures:
    def test_departure_completes_playing_round(self, settings):
        room = make_room(("alice", "bob", "carol"))
        _start(room, settings)
        _play_all(room, settings, ["alice", "bob"])

        remove_player(room, "carol", settings, NOW)

        assert room.status == RoomStatus.VOTING
        assert len(room.submissions) == 2

    def test_departure_drops_submission_and_votes(self, settings):
        room = make_room(("alice", "bob", "carol", "dave"))
        _start(room, settings)
        _play_all(room, settings)
        cast_vote(room, "alice", "carol", settings, NOW)
        cast_vote(room, "carol", "bob", settings, NOW)

        remove_player(room, "carol", settings, NOW)

        assert room.submission_of("carol") is None
        assert "carol" not in room.vote_registry
        assert "alice" not in room.vote_registry
        assert room.submission_of("bob").vote_count == 0
        assert room.status == RoomStatus.VOTING

    def test_departure_completes_voting(self, settings):
        room = make_room(("alice", "bob", "carol"))
        _start(room, settings)
        _play_all(room, settings)
        cast_vote(room, "alice", "bob", settings, NOW)
        cast_vote(room, "bob", "alice", settings, NOW)

        remove_player(room, "carol", settings, NOW)

        assert room.status == RoomStatus.PLAYING
        assert room.current_prompt_index == 1
        assert room.players["alice"].score == 1
        assert room.players["bob"].score == 1


class TestExpirePhase:
    def test_stale_version_rejected(self, settings):
        room = make_room(("alice", "bob"))
        _start(room, settings)
        with pytest.raises(InvalidActionError, match="stale"):
            expire_phase(room, room.phase_version - 1, settings, NOW)
        assert room.status == RoomStatus.PLAYING

    def test_no_submissions_skips_to_next_prompt(self, settings):
        room = make_room(("alice", "bob"))
        _start(room, settings)

        expire_phase(room, room.phase_version, settings, NOW + 45)

        assert room.status == RoomStatus.PLAYING
        assert room.current_prompt_index == 1
        assert room.turn_deadline == NOW + 45 + settings.turn_duration_seconds

    def test_partial_submissions_go_to_voting(self, settings):
        room = make_room(("alice", "bob", "carol"))
        _start(room, settings)
        _play_all(room, settings, ["alice", "bob"])

        expire_phase(room, room.phase_version, settings, NOW)

        assert room.status == RoomStatus.VOTING
        assert len(room.submissions) == 2

    def test_player_with_only_own_submission_needs_no_vote(self, settings):
        room = make_room(("alice", "bob"))
        _start(room, settings)
        _play_all(room, settings, ["alice"])
        expire_phase(room, room.phase_version, settings, NOW)
        assert room.status == RoomStatus.VOTING
        assert not voting_complete(room)

        cast_vote(room, "bob", "alice", settings, NOW)

        assert room.status == RoomStatus.PLAYING
        assert room.players["alice"].score == 1

    def test_voting_timeout_scores_existing_votes(self, settings):
        room = make_room(("alice", "bob", "carol"))
        _start(room, settings)
        _play_all(room, settings)
        cast_vote(room, "alice", "carol", settings, NOW)

        expire_phase(room, room.phase_version, settings, NOW)

        assert room.players["carol"].score == 1
        assert room.current_prompt_index == 1

    def test_no_timed_phase_while_waiting(self, settings):
        room = make_room(("alice", "bob"))
        with pytest.raises(InvalidActionError):
            expire_phase(room, room.phase_version, settings, NOW)


class TestUpdateSettings:
    def test_host_changes_prompts_between_games(self, settings):
        room = make_room(("alice", "bob"))
        update_settings(room, "alice", 3, [], TEST_PROMPTS, settings)
        assert room.prompts == list(TEST_PROMPTS[:3])
        assert room.prompt_total == 3
        assert room.current_prompt_index == -1

    def test_custom_prompts(self, settings):
        room = make_room(("alice", "bob"))
        update_settings(room, "alice", None, ["one", "two", "three"], TEST_PROMPTS, settings)
        assert room.prompts == ["one", "two"]

    def test_non_host_rejected(self, settings):
        room = make_room(("alice", "bob"))
        with pytest.raises(InvalidActionError):
            update_settings(room, "bob", 3, [], TEST_PROMPTS, settings)

    def test_rejected_mid_game(self, settings):
        room = make_room(("alice", "bob"))
        _start(room, settings)
        with pytest.raises(InvalidActionError):
            update_settings(room, "alice", 3, [], TEST_PROMPTS, settings)


class TestChat:
    def test_chat_log_is_bounded(self):
        room = make_room(("alice",), settings=GameSettings(chat_log_limit=3))
        for i in range(5):
            post_chat(room, "alice", f"message {i}", NOW + i)
        bodies = [m.body for m in room.chat_log.messages]
        assert bodies == ["message 2", "message 3", "message 4"]

    def test_chat_records_sender_and_millis(self):
        room = make_room(("alice",))
        message = post_chat(room, "alice", "hi", 12.5)
        assert message.sender == "Alice"
        assert message.ts == 12_500
        assert message.id.startswith("msg-")

    def test_non_member_rejected(self):
        room = make_room(("alice",))
        with pytest.raises(InvalidActionError):
            post_chat(room, "mallory", "hi", NOW)
