from marshmallow import Schema, fields, pre_load, validate, validates, ValidationError, EXCLUDE

from models.user import ROLES

USERNAME_PATTERN = r"^[a-zA-Z0-9_-]+$"


def _strip(v):
    return v.strip() if isinstance(v, str) else v


def normalize_role(value):
    """'admin' / 'ADMIN' / 'Admin' -> 'Admin'; empty -> None"""
    if not value:
        return None
    return value[0].upper() + value[1:].lower()


class UserCreateSchema(Schema):
    username = fields.String(
        required=True,
        validate=[
            validate.Length(min=2, max=20, error="Username must be 2-20 characters long."),
            validate.Regexp(
                USERNAME_PATTERN,
                error="Username can only contain letters, numbers, underscores and hyphens.",
            ),
        ],
    )
    password = fields.String(
        required=True,
        load_only=True,
        validate=validate.Length(min=6, max=32, error="Password must be 6-32 characters long."),
    )
    role = fields.String(load_default=None, allow_none=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict):
            data = dict(data)
            if "username" in data:
                data["username"] = _strip(data["username"])
            if "role" in data:
                data["role"] = normalize_role(_strip(data["role"]))
        return data

    @validates("role")
    def validate_role(self, value, **kwargs):
        if value is not None and value not in ROLES:
            raise ValidationError(f"Role must be one of: {', '.join(ROLES)}.")


class UserLoginSchema(Schema):
    username = fields.String(required=True, validate=validate.Length(min=2, max=20))
    password = fields.String(required=True, load_only=True, validate=validate.Length(min=6, max=32))

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "username" in data:
            data = dict(data)
            data["username"] = _strip(data["username"])
        return data


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    username = fields.String()
    role = fields.String()


class RefreshRequestSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    # optional: the refreshToken cookie is used when the body has none
    refresh_token = fields.String(load_default=None, allow_none=True, validate=validate.Length(max=128))
