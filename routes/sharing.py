"""Want-list, share-link and trade-connection endpoints."""

from __future__ import annotations

from flask import jsonify, request
from flask_login import current_user, login_required

from extensions import db, limiter
from services import share_links as share_link_service
from services import trades as trade_service
from services.localization import request_language
from services.wantlist import parse_wantlist_filters, wantlist_for_user

from .base import request_payload, share_rate_limit, views


@views.route("/api/wantlist", methods=["GET"])
@login_required
def my_wantlist():
    items = wantlist_for_user(
        current_user.id,
        language=request_language(),
        filters=parse_wantlist_filters(request.args),
    )
    return jsonify({"wantlist": items})


# ---------------------------------------------------------------------------
# Share links
# ---------------------------------------------------------------------------

@views.route("/api/share-links", methods=["GET"])
@login_required
def list_share_links():
    links = share_link_service.list_share_links(current_user)
    return jsonify({"shareLinks": [share_link_service.share_link_to_dict(link) for link in links]})


@views.route("/api/share-links", methods=["POST"])
@login_required
def create_share_link():
    link = share_link_service.create_share_link(current_user, request_payload(), language=request_language())
    db.session.commit()
    return jsonify(share_link_service.share_link_to_dict(link)), 201


@views.route("/api/share-links/<int:link_id>", methods=["DELETE"])
@login_required
def revoke_share_link(link_id: int):
    share_link_service.revoke_share_link(current_user, link_id)
    db.session.commit()
    return jsonify({"success": True})


@views.route("/api/shared/<token>", methods=["GET"])
@limiter.limit(share_rate_limit)
def shared_link_metadata(token: str):
    metadata = share_link_service.share_link_metadata(token)
    db.session.commit()
    return jsonify(metadata)


@views.route("/api/shared/<token>/wantlist", methods=["GET"])
@limiter.limit(share_rate_limit)
def shared_wantlist(token: str):
    items = share_link_service.shared_wantlist(
        token,
        language=request_language(),
        filters=parse_wantlist_filters(request.args),
    )
    db.session.commit()
    return jsonify({"wantlist": items})


# ---------------------------------------------------------------------------
# Trade connections
# ---------------------------------------------------------------------------

@views.route("/api/trades", methods=["GET"])
@login_required
def list_trades():
    return jsonify({"connections": trade_service.list_connections(current_user)})


@views.route("/api/trades/invites", methods=["POST"])
@login_required
def create_trade_invite():
    connection = trade_service.create_invite(current_user)
    db.session.commit()
    return jsonify({"inviteToken": connection.invite_token}), 201


@views.route("/api/trades/invites/<token>", methods=["GET"])
@limiter.limit(share_rate_limit)
def trade_invite_preview(token: str):
    return jsonify(trade_service.invite_preview(token))


@views.route("/api/trades/invites/<token>/accept", methods=["POST"])
@login_required
def accept_trade_invite(token: str):
    connection = trade_service.accept_invite(current_user, token)
    db.session.commit()
    return jsonify({"connectionId": connection.id})


@views.route("/api/trades/invites/<token>/decline", methods=["POST"])
@login_required
def decline_trade_invite(token: str):
    trade_service.decline_invite(current_user, token)
    db.session.commit()
    return jsonify({"success": True})


@views.route("/api/trades/<int:connection_id>", methods=["GET"])
@login_required
def get_trade(connection_id: int):
    return jsonify(trade_service.get_connection(current_user, connection_id))


@views.route("/api/trades/<int:connection_id>", methods=["DELETE"])
@login_required
def remove_trade(connection_id: int):
    trade_service.remove_connection(current_user, connection_id)
    db.session.commit()
    return jsonify({"success": True})
