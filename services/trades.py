"""Trade connections between collectors.

One collector creates an invite and passes its token to another. Accepting
opens a live share link for each side, so both can browse the other's
want-list; removing the connection revokes both links.
"""

from __future__ import annotations

from typing import Any, Dict, List

from flask import abort
from sqlalchemy import or_, select

from extensions import db
from models import TradeConnection, WantlistShareLink
from services.audit import record_audit_event
from services.validation import ValidationError
from utils.time import isoformat

PARTNER_LABEL = "Trade partner: {name}"


def _by_token(token: str) -> TradeConnection:
    connection = db.session.scalars(
        select(TradeConnection).where(TradeConnection.invite_token == token)
    ).first()
    if connection is None:
        abort(404, description="Invite not found.")
    return connection


def _for_participant(user, connection_id: int) -> TradeConnection:
    connection = db.session.get(TradeConnection, connection_id)
    if connection is None:
        abort(404, description="Connection not found.")
    if not connection.involves(user.id):
        abort(403)
    return connection


def create_invite(user) -> TradeConnection:
    connection = TradeConnection(requester_id=user.id)
    db.session.add(connection)
    db.session.flush()
    record_audit_event("trade_invite_created", {"trade_connection_id": connection.id}, user_id=user.id)
    return connection


def invite_preview(token: str) -> Dict[str, Any]:
    connection = _by_token(token)
    return {
        "id": connection.id,
        "status": connection.status,
        "requester": connection.requester.public_dict(),
    }


def accept_invite(user, token: str) -> TradeConnection:
    connection = _by_token(token)
    if connection.status == TradeConnection.STATUS_ACCEPTED:
        raise ValidationError("This invite has already been accepted.", field="token")
    if connection.requester_id == user.id:
        raise ValidationError("You cannot accept your own invite.", field="token")

    # each label names the partner who will be looking at the list
    requester_link = WantlistShareLink(
        user_id=connection.requester_id,
        label=PARTNER_LABEL.format(name=user.public_name),
    )
    target_link = WantlistShareLink(
        user_id=user.id,
        label=PARTNER_LABEL.format(name=connection.requester.public_name),
    )
    connection.status = TradeConnection.STATUS_ACCEPTED
    connection.target_id = user.id
    connection.requester_share_link = requester_link
    connection.target_share_link = target_link
    db.session.flush()
    record_audit_event("trade_invite_accepted", {"trade_connection_id": connection.id}, user_id=user.id)
    return connection


def decline_invite(user, token: str) -> TradeConnection:
    connection = _by_token(token)
    if connection.requester_id == user.id:
        raise ValidationError("You cannot decline your own invite.", field="token")
    if connection.status == TradeConnection.STATUS_ACCEPTED:
        raise ValidationError("This invite has already been accepted.", field="token")
    connection.status = TradeConnection.STATUS_DECLINED
    connection.target_id = user.id
    db.session.flush()
    record_audit_event("trade_invite_declined", {"trade_connection_id": connection.id}, user_id=user.id)
    return connection


def _partner_view(user, connection: TradeConnection) -> Dict[str, Any]:
    is_requester = connection.requester_id == user.id
    partner = connection.target if is_requester else connection.requester
    partner_link = connection.target_share_link if is_requester else connection.requester_share_link
    return {
        "id": connection.id,
        "status": connection.status,
        "isRequester": is_requester,
        "partner": partner.public_dict() if partner is not None else None,
        "viewPartnerToken": partner_link.token if partner_link is not None else None,
        "createdAt": isoformat(connection.created_at),
    }


def list_connections(user) -> List[Dict[str, Any]]:
    connections = db.session.scalars(
        select(TradeConnection)
        .where(or_(TradeConnection.requester_id == user.id, TradeConnection.target_id == user.id))
        .order_by(TradeConnection.created_at.desc(), TradeConnection.id.desc())
    )
    out = []
    for connection in connections:
        view = _partner_view(user, connection)
        view["inviteToken"] = connection.invite_token
        out.append(view)
    return out


def get_connection(user, connection_id: int) -> Dict[str, Any]:
    connection = _for_participant(user, connection_id)
    if connection.status != TradeConnection.STATUS_ACCEPTED:
        raise ValidationError("Connection is not accepted yet.", field="status", invalid=[connection.status])
    return _partner_view(user, connection)


def remove_connection(user, connection_id: int) -> None:
    connection = _for_participant(user, connection_id)
    links = [link for link in (connection.requester_share_link, connection.target_share_link) if link is not None]
    db.session.delete(connection)
    db.session.flush()
    for link in links:
        db.session.delete(link)
    db.session.flush()
    record_audit_event("trade_connection_removed", {"trade_connection_id": connection_id}, user_id=user.id)
