from marshmallow import Schema, fields


class UserNotificationOutSchema(Schema):
    """Flattened view of a fan-out row joined with its notification"""
    id = fields.String()
    user_id = fields.String()
    notification_id = fields.String()
    message = fields.Method("get_message")
    created_at = fields.Method("get_created_at")
    is_read = fields.Boolean()
    read_at = fields.DateTime(allow_none=True)

    def get_message(self, obj):
        return obj.notification.message

    def get_created_at(self, obj):
        return obj.notification.created_at.isoformat()
