import pytest
from werkzeug.exceptions import Forbidden, NotFound

from extensions import db
from models import TradeConnection, WantlistShareLink
from services import share_links, trades
from services.validation import ValidationError
from tests.factories import create_binder, create_cards


@pytest.fixture
def collectors(create_user):
    ash, _ = create_user(email="ash@example.com", username="ash", display_name="Ash")
    misty, _ = create_user(email="misty@example.com", username="misty", display_name="Misty")
    return ash, misty


def test_invite_preview_shows_requester(collectors):
    ash, _ = collectors
    invite = trades.create_invite(ash)

    preview = trades.invite_preview(invite.invite_token)

    assert preview["status"] == TradeConnection.STATUS_PENDING
    assert preview["requester"] == {"id": ash.id, "name": "Ash"}
    with pytest.raises(NotFound):
        trades.invite_preview("missing")


def test_accept_opens_each_others_wantlist(collectors):
    ash, misty = collectors
    ash_card, misty_card = create_cards(2)
    create_binder(ash, placements=[(ash_card, 0)])
    create_binder(misty, placements=[(misty_card, 0)])
    invite = trades.create_invite(ash)

    connection = trades.accept_invite(misty, invite.invite_token)

    assert connection.status == TradeConnection.STATUS_ACCEPTED
    assert connection.target_id == misty.id
    assert connection.requester_share_link.user_id == ash.id
    assert connection.requester_share_link.label == "Trade partner: Misty"
    assert connection.target_share_link.user_id == misty.id

    ash_view = trades.get_connection(ash, connection.id)
    misty_view = trades.get_connection(misty, connection.id)
    assert ash_view["partner"]["name"] == "Misty"
    assert misty_view["partner"]["name"] == "Ash"
    assert [item["cardId"] for item in share_links.shared_wantlist(ash_view["viewPartnerToken"])] == [misty_card.id]
    assert [item["cardId"] for item in share_links.shared_wantlist(misty_view["viewPartnerToken"])] == [ash_card.id]


def test_accept_rejects_own_and_repeated_invites(collectors):
    ash, misty = collectors
    invite = trades.create_invite(ash)

    with pytest.raises(ValidationError):
        trades.accept_invite(ash, invite.invite_token)

    trades.accept_invite(misty, invite.invite_token)
    with pytest.raises(ValidationError) as excinfo:
        trades.accept_invite(misty, invite.invite_token)
    assert "already been accepted" in excinfo.value.message


def test_decline_marks_invite(collectors):
    ash, misty = collectors
    invite = trades.create_invite(ash)

    with pytest.raises(ValidationError):
        trades.decline_invite(ash, invite.invite_token)
    declined = trades.decline_invite(misty, invite.invite_token)

    assert declined.status == TradeConnection.STATUS_DECLINED
    assert WantlistShareLink.query.count() == 0
    with pytest.raises(ValidationError):
        trades.get_connection(ash, declined.id)


def test_list_connections_from_both_sides(collectors):
    ash, misty = collectors
    pending = trades.create_invite(ash)
    accepted = trades.create_invite(misty)
    trades.accept_invite(ash, accepted.invite_token)

    listed = {row["id"]: row for row in trades.list_connections(ash)}

    assert listed[pending.id]["partner"] is None
    assert listed[pending.id]["isRequester"] is True
    assert listed[accepted.id]["isRequester"] is False
    assert listed[accepted.id]["partner"]["name"] == "Misty"
    assert listed[accepted.id]["viewPartnerToken"] == accepted.requester_share_link.token


def test_remove_is_participant_only_and_revokes_links(collectors, create_user):
    ash, misty = collectors
    outsider, _ = create_user(email="brock@example.com", username="brock")
    invite = trades.create_invite(ash)
    connection = trades.accept_invite(misty, invite.invite_token)
    connection_id = connection.id

    with pytest.raises(Forbidden):
        trades.remove_connection(outsider, connection_id)

    trades.remove_connection(misty, connection_id)
    db.session.flush()

    assert db.session.get(TradeConnection, connection_id) is None
    assert WantlistShareLink.query.count() == 0
    with pytest.raises(NotFound):
        trades.remove_connection(ash, connection_id)
