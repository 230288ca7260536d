"""Want-list share links.

A link is either live (the want-list is computed on every visit) or a
snapshot frozen when the link was made. Links may be scoped to some of the
owner's binders and may expire; an expired link answers 403, an unknown
token 404.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from flask import abort, current_app
from sqlalchemy import select

from extensions import db
from models import UserSet, WantlistShareLink
from services.audit import record_audit_event
from services.validation import (
    ValidationError,
    optional_text,
    parse_bool,
    parse_id_list,
    parse_optional_datetime,
)
from services.wantlist import WantlistFilters, wantlist_for_user
from utils.time import isoformat, utcnow

MAX_LABEL_LENGTH = 128


def _set_names(owner_id: int, set_ids: Optional[List[int]]) -> Optional[List[Any]]:
    if not set_ids:
        return None
    names = dict(
        db.session.execute(
            select(UserSet.id, UserSet.name).where(UserSet.user_id == owner_id, UserSet.id.in_(set_ids))
        ).all()
    )
    return [names.get(set_id, set_id) for set_id in set_ids]


def share_link_to_dict(link: WantlistShareLink) -> Dict[str, Any]:
    return {
        "id": link.id,
        "token": link.token,
        "label": link.label,
        "setIds": link.set_ids,
        "setNames": _set_names(link.user_id, link.set_ids),
        "isSnapshot": bool(link.is_snapshot),
        "expiresAt": isoformat(link.expires_at),
        "lastAccessedAt": isoformat(link.last_accessed_at),
        "createdAt": isoformat(link.created_at),
    }


def list_share_links(user) -> List[WantlistShareLink]:
    return list(
        db.session.scalars(
            select(WantlistShareLink)
            .where(WantlistShareLink.user_id == user.id)
            .order_by(WantlistShareLink.created_at.desc(), WantlistShareLink.id.desc())
        )
    )


def _ensure_own_user_sets(user, set_ids: List[int]) -> None:
    if not set_ids:
        return
    owned = set(
        db.session.scalars(select(UserSet.id).where(UserSet.user_id == user.id, UserSet.id.in_(set_ids)))
    )
    missing = [set_id for set_id in set_ids if set_id not in owned]
    if missing:
        raise ValidationError("Unknown binder.", field="userSetIds", invalid=missing)


def create_share_link(user, payload: Dict[str, Any], *, language: Optional[str] = None) -> WantlistShareLink:
    label = optional_text(payload.get("label"))
    if label and len(label) > MAX_LABEL_LENGTH:
        raise ValidationError("Label is too long.", field="label", invalid=[label])
    set_ids = parse_id_list(payload.get("userSetIds", payload.get("user_set_ids")), field="userSetIds")
    _ensure_own_user_sets(user, set_ids)
    is_snapshot = parse_bool(payload.get("isSnapshot", payload.get("is_snapshot")), field="isSnapshot")
    expires_at = parse_optional_datetime(payload.get("expiresAt", payload.get("expires_at")), field="expiresAt")

    link = WantlistShareLink(
        user_id=user.id,
        label=label,
        set_ids=set_ids or None,
        is_snapshot=is_snapshot,
        snapshot_data=wantlist_for_user(user.id, language=language, user_set_ids=set_ids) if is_snapshot else None,
        expires_at=expires_at,
    )
    db.session.add(link)
    db.session.flush()
    record_audit_event(
        "share_link_created",
        {"share_link_id": link.id, "snapshot": is_snapshot, "user_set_ids": set_ids},
        user_id=user.id,
    )
    return link


def revoke_share_link(user, link_id: int) -> None:
    link = db.session.scalars(
        select(WantlistShareLink).where(WantlistShareLink.id == link_id, WantlistShareLink.user_id == user.id)
    ).first()
    if link is None:
        abort(404, description="Share link not found.")
    db.session.delete(link)
    db.session.flush()
    record_audit_event("share_link_revoked", {"share_link_id": link_id}, user_id=user.id)


def resolve_share_link(token: str) -> WantlistShareLink:
    """Public lookup by token; records the visit."""
    link = db.session.scalars(select(WantlistShareLink).where(WantlistShareLink.token == token)).first()
    if link is None:
        abort(404, description="Share link not found.")
    if link.is_expired():
        current_app.logger.info("Expired share link %s requested", link.id)
        abort(403, description="This share link has expired.")
    link.last_accessed_at = utcnow()
    db.session.flush()
    return link


def share_link_metadata(token: str) -> Dict[str, Any]:
    link = resolve_share_link(token)
    return {
        "label": link.label,
        "setNames": _set_names(link.user_id, link.set_ids),
        "isSnapshot": bool(link.is_snapshot),
        "expiresAt": isoformat(link.expires_at),
        "createdAt": isoformat(link.created_at),
        "owner": link.user.public_dict(),
    }


def shared_wantlist(
    token: str,
    *,
    language: Optional[str] = None,
    filters: Optional[WantlistFilters] = None,
) -> List[Dict[str, Any]]:
    """Snapshots come back exactly as frozen; live links honour ``filters``."""
    link = resolve_share_link(token)
    if link.is_snapshot and link.snapshot_data is not None:
        return link.snapshot_data
    return wantlist_for_user(link.user_id, language=language, filters=filters, user_set_ids=link.set_ids)
