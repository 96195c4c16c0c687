from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from models.schemas.common import PaginationSchema
from models.schemas.notification import UserNotificationOutSchema
from models.user import ROLE_ADMIN, ROLE_USER
from services.errors import NotFound
from utils.decorators import roles_required

bp = Blueprint("notifications", __name__)

pagination_schema = PaginationSchema()
notifications_out_schema = UserNotificationOutSchema(many=True)


def _service():
    return current_app.extensions["notifications"]


@bp.get("")
@roles_required([ROLE_ADMIN, ROLE_USER])
def latest():
    """
    Latest notifications for the caller (admins see every recipient row)
    ---
    tags:
      - Notifications
    security:
      - Bearer: []
    responses:
      200: { description: OK }
    """
    user = g.current_user
    limit = current_app.config["NOTIFICATIONS_LATEST_LIMIT"]
    rows = _service().latest_for_user(user["user_id"], user["role"], limit=limit)
    return jsonify({"data": notifications_out_schema.dump(rows)}), 200


@bp.get("/paged")
@roles_required([ROLE_ADMIN, ROLE_USER])
def paged():
    """
    Paginated notifications, newest first
    ---
    tags:
      - Notifications
    security:
      - Bearer: []
    parameters:
      - { in: query, name: page, type: integer, default: 1 }
      - { in: query, name: page_size, type: integer, default: 20 }
    responses:
      200: { description: OK }
      400: { description: Invalid pagination }
    """
    args = pagination_schema.load(request.args)
    user = g.current_user
    rows, total = _service().list_for_user(
        user["user_id"], user["role"], page=args["page"], page_size=args["page_size"]
    )
    return jsonify(
        {
            "data": notifications_out_schema.dump(rows),
            "meta": {"page": args["page"], "page_size": args["page_size"], "total": total},
        }
    ), 200


@bp.get("/unread-count")
@roles_required([ROLE_ADMIN, ROLE_USER])
def unread_count():
    """
    Number of unread notifications of the caller
    ---
    tags:
      - Notifications
    security:
      - Bearer: []
    responses:
      200: { description: OK }
    """
    return jsonify({"count": _service().unread_count(g.current_user["user_id"])}), 200


@bp.put("/<user_notification_id>/read")
@roles_required([ROLE_ADMIN, ROLE_USER])
def mark_read(user_notification_id: str):
    """
    Mark one of the caller's notifications as read
    ---
    tags:
      - Notifications
    security:
      - Bearer: []
    parameters:
      - { in: path, name: user_notification_id, type: string, required: true }
    responses:
      200: { description: Marked as read }
      404: { description: Notification not found }
    """
    if not _service().mark_read(user_notification_id, user_id=g.current_user["user_id"]):
        raise NotFound("Notification not found")
    return jsonify({"message": "Marked as read"}), 200


@bp.put("/read-all")
@roles_required([ROLE_ADMIN, ROLE_USER])
def mark_all_read():
    """
    Mark every unread notification of the caller as read
    ---
    tags:
      - Notifications
    security:
      - Bearer: []
    responses:
      200: { description: OK }
    """
    updated = _service().mark_all_read(g.current_user["user_id"])
    return jsonify({"message": "All notifications marked as read", "updated": updated}), 200
