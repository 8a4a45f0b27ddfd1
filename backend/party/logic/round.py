"""
Room state machine: dealing, submissions, voting, scoring, and phase changes.

Functions here mutate a Room in place and raise InvalidActionError when an
action does not apply to the current state. They never perform I/O; callers
serialize access per room and broadcast the result.

waiting -> playing -> voting -> playing -> ... -> finished (-> playing on restart)
"""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING

from party.logic.deck import build_deck
from party.logic.enums import ErrorCode, RoomStatus
from party.logic.exceptions import InvalidActionError
from party.logic.models import ChatMessage, Player, Submission

if TYPE_CHECKING:
    import random
    from collections.abc import Sequence

    from party.logic.models import CardTemplate, Room
    from party.logic.settings import GameSettings

_RESTARTABLE = (RoomStatus.WAITING, RoomStatus.FINISHED)


def select_prompts(
    prompt_total: int | None,
    custom_prompts: Sequence[str],
    default_prompts: Sequence[str],
    settings: GameSettings,
) -> list[str]:
    """Pick the prompts for a game: custom ones when given, else the default slice."""
    total = settings.clamp_prompt_total(prompt_total)
    source = custom_prompts or default_prompts
    return list(source[:total])


def _require_player(room: Room, player_id: str, action: str) -> Player:
    player = room.players.get(player_id)
    if player is None:
        raise InvalidActionError(action=action, reason="not a member of the room")
    return player


def _require_host(room: Room, player_id: str, action: str) -> Player:
    player = _require_player(room, player_id, action)
    if room.host_id != player_id:
        raise InvalidActionError(action=action, reason="only the host can do this")
    return player


def _require_status(room: Room, status: RoomStatus, action: str) -> None:
    if room.status != status:
        raise InvalidActionError(action=action, reason=f"room is {room.status}, expected {status}")


def deal_cards(room: Room, hand_size: int, players: Sequence[Player] | None = None) -> None:
    """Top up hands to ``hand_size`` in join order until the deck runs out."""
    for player in players if players is not None else list(room.players.values()):
        while len(player.hand) < hand_size and room.deck:
            player.hand.append(room.deck.pop(0))


# --- Membership ---


def add_player(room: Room, player_id: str, display_name: str, settings: GameSettings) -> bool:
    """Add a player, or rename an existing one. Return True when a new player was created.

    The first player of a room without a host becomes host. A player who
    joins mid-game is dealt a hand from the remaining deck.
    """
    existing = room.players.get(player_id)
    if existing is not None:
        existing.display_name = display_name
        return False

    if room.host_id is None or room.host_id not in room.players:
        room.host_id = player_id
    player = Player(id=player_id, display_name=display_name, is_host=room.host_id == player_id)
    room.players[player_id] = player
    if room.status.is_active:
        deal_cards(room, settings.hand_size, [player])
    return True


def remove_player(room: Room, player_id: str, settings: GameSettings, now: float) -> bool:
    """Remove a player and repair the round around the gap.

    Their submission and every vote touching it are dropped, host passes to
    the first remaining player, and round/voting completion is re-evaluated
    against the smaller table.
    """
    if room.players.pop(player_id, None) is None:
        return False

    room.submissions = [s for s in room.submissions if s.owner_id != player_id]
    room.vote_registry.pop(player_id, None)
    for voter_id, target_id in list(room.vote_registry.items()):
        if target_id == player_id:
            del room.vote_registry[voter_id]
    recount_votes(room)

    if room.host_id == player_id:
        next_host = next(iter(room.players.values()), None)
        room.host_id = next_host.id if next_host is not None else None
        if next_host is not None:
            next_host.is_host = True

    if room.is_empty:
        return True
    if room.status == RoomStatus.PLAYING:
        _maybe_start_voting(room, settings, now)
    elif room.status == RoomStatus.VOTING and voting_complete(room):
        finish_voting(room, settings, now)
    return True


# --- Game flow ---


def start_game(
    room: Room,
    player_id: str,
    catalog: Sequence[CardTemplate],
    settings: GameSettings,
    now: float,
    rng: random.Random | None = None,
) -> None:
    """Host starts (or restarts) the game: fresh deck, zeroed scores, first prompt."""
    _require_host(room, player_id, "start")
    if room.status not in _RESTARTABLE:
        raise InvalidActionError(action="start", reason=f"game already in progress ({room.status})")
    if room.player_count < settings.min_players:
        raise InvalidActionError(
            action="start",
            reason=f"at least {settings.min_players} players are needed",
            code=ErrorCode.NOT_ENOUGH_PLAYERS,
            surface=True,
        )

    room.deck = build_deck(catalog, room.player_count * settings.hand_size, rng)
    room.submissions = []
    room.vote_registry = {}
    room.current_prompt_index = -1
    for player in room.players.values():
        player.reset_for_game()
    advance_prompt(room, settings, now)


def advance_prompt(room: Room, settings: GameSettings, now: float) -> None:
    """Move to the next prompt, or finish the game when prompts run out."""
    room.current_prompt_index += 1
    room.phase_version += 1
    room.submissions = []
    room.vote_registry = {}
    room.vote_deadline = None

    if room.current_prompt_index >= len(room.prompts):
        room.current_prompt_index = max(0, len(room.prompts) - 1)
        room.status = RoomStatus.FINISHED
        room.turn_deadline = None
        for player in room.players.values():
            player.hand = []
            player.played_card_id = None
        return

    room.status = RoomStatus.PLAYING
    for player in room.players.values():
        player.played_card_id = None
    deal_cards(room, settings.hand_size)
    room.turn_deadline = now + settings.turn_duration_seconds


def play_card(room: Room, player_id: str, card_id: str, settings: GameSettings, now: float) -> Submission:
    _require_status(room, RoomStatus.PLAYING, "play_card")
    player = _require_player(room, player_id, "play_card")
    if player.has_played:
        raise InvalidActionError(action="play_card", reason="already played this round")

    index = next((i for i, card in enumerate(player.hand) if card.instance_id == card_id), None)
    if index is None:
        raise InvalidActionError(action="play_card", reason=f"card {card_id!r} is not in hand")

    card = player.hand.pop(index)
    player.played_card_id = card.instance_id
    submission = Submission(owner_id=player.id, card=card)
    room.submissions.append(submission)
    if room.deck:
        player.hand.append(room.deck.pop(0))

    _maybe_start_voting(room, settings, now)
    return submission


def _maybe_start_voting(room: Room, settings: GameSettings, now: float) -> None:
    if room.status == RoomStatus.PLAYING and room.submissions and len(room.submissions) >= room.player_count:
        start_voting(room, settings, now)


def start_voting(room: Room, settings: GameSettings, now: float) -> None:
    room.status = RoomStatus.VOTING
    room.phase_version += 1
    room.turn_deadline = None
    room.vote_deadline = now + settings.vote_duration_seconds


def cast_vote(room: Room, voter_id: str, target_id: str, settings: GameSettings, now: float) -> None:
    """Record (or change) a vote, then finish voting once everyone has voted."""
    _require_status(room, RoomStatus.VOTING, "vote")
    _require_player(room, voter_id, "vote")
    if target_id == voter_id:
        raise InvalidActionError(action="vote", reason="cannot vote for own submission")
    if room.submission_of(target_id) is None:
        raise InvalidActionError(action="vote", reason=f"no submission from {target_id!r}")

    room.vote_registry[voter_id] = target_id
    recount_votes(room)
    if voting_complete(room):
        finish_voting(room, settings, now)


def recount_votes(room: Room) -> None:
    """Rebuild every submission's voter set from the registry (re-votes never double count)."""
    by_owner = {submission.owner_id: submission for submission in room.submissions}
    for submission in room.submissions:
        submission.voter_ids.clear()
    for voter_id, target_id in room.vote_registry.items():
        submission = by_owner.get(target_id)
        if submission is not None:
            submission.voter_ids.add(voter_id)


def voting_complete(room: Room) -> bool:
    """Every current player has voted or has nothing they are allowed to vote for."""
    if room.is_empty:
        return False
    for player_id in room.players:
        if player_id in room.vote_registry:
            continue
        if any(submission.owner_id != player_id for submission in room.submissions):
            return False
    return True


def tally_votes(room: Room) -> Counter[str]:
    return Counter(room.vote_registry.values())


def award_points(room: Room) -> list[str]:
    """Give one point to every owner tied at the top vote count. Return the winners."""
    tally = tally_votes(room)
    top = max(tally.values(), default=0)
    if top == 0:
        return []
    winners = [owner_id for owner_id, count in tally.items() if count == top and owner_id in room.players]
    for owner_id in winners:
        room.players[owner_id].score += 1
    return winners


def finish_voting(room: Room, settings: GameSettings, now: float) -> list[str]:
    winners = award_points(room)
    advance_prompt(room, settings, now)
    return winners


def expire_phase(room: Room, phase_version: int, settings: GameSettings, now: float) -> None:
    """Force the current phase to end as if its deadline passed.

    In ``playing``, players who have not submitted sit the round out; with
    at least one submission the room moves to voting, otherwise straight to
    the next prompt. In ``voting``, the round is scored with the votes cast.
    """
    if phase_version != room.phase_version:
        raise InvalidActionError(
            action="expire_phase",
            reason=f"stale phase {phase_version}, current is {room.phase_version}",
        )
    if room.status == RoomStatus.PLAYING:
        if room.submissions:
            start_voting(room, settings, now)
            if voting_complete(room):
                finish_voting(room, settings, now)
        else:
            advance_prompt(room, settings, now)
    elif room.status == RoomStatus.VOTING:
        finish_voting(room, settings, now)
    else:
        raise InvalidActionError(action="expire_phase", reason=f"no timed phase while {room.status}")


# --- Room settings and chat ---


def update_settings(
    room: Room,
    player_id: str,
    prompt_total: int | None,
    custom_prompts: Sequence[str],
    default_prompts: Sequence[str],
    settings: GameSettings,
) -> None:
    """Host changes the prompt count/list between games."""
    _require_host(room, player_id, "update_settings")
    if room.status not in _RESTARTABLE:
        raise InvalidActionError(action="update_settings", reason="cannot change settings mid-game")
    room.prompts = select_prompts(prompt_total, custom_prompts, default_prompts, settings)
    room.current_prompt_index = -1


def post_chat(room: Room, player_id: str, body: str, now: float) -> ChatMessage:
    player = _require_player(room, player_id, "chat")
    if not body:
        raise InvalidActionError(action="chat", reason="empty message")
    message = ChatMessage.create(sender=player.display_name, body=body, now=now)
    room.chat_log.append(message)
    return message
