"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- GET  /auth/profile

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues 15 minute access tokens (JWT, HS256) and 7 day opaque refresh tokens
- Stores refresh tokens in DB (RefreshToken model); every refresh rotates the
  token and revokes the old one, so a refresh token works exactly once
- Tokens are returned in the body and also set as HttpOnly cookies
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from models.schemas.user import UserCreateSchema, UserOutSchema, UserLoginSchema, RefreshRequestSchema
from services.errors import InvalidSession
from utils.decorators import jwt_required, ACCESS_COOKIE

REFRESH_COOKIE = "refreshToken"

bp = Blueprint("auth", __name__)

user_create_schema = UserCreateSchema()
user_out_schema = UserOutSchema()
user_login_schema = UserLoginSchema()
refresh_request_schema = RefreshRequestSchema()


def _sessions():
    return current_app.extensions["session_manager"]


def _client_ip() -> str | None:
    return request.remote_addr


def _presented_refresh_token() -> str | None:
    payload = request.get_json(silent=True)
    data = refresh_request_schema.load(payload if isinstance(payload, dict) else {})
    return data["refresh_token"] or request.cookies.get(REFRESH_COOKIE)


def _set_auth_cookies(response, tokens):
    opts = {
        "httponly": True,
        "secure": current_app.config["AUTH_COOKIE_SECURE"],
        "samesite": current_app.config["AUTH_COOKIE_SAMESITE"],
    }
    response.set_cookie(ACCESS_COOKIE, tokens.access_token, expires=tokens.access_expires_at, **opts)
    response.set_cookie(REFRESH_COOKIE, tokens.refresh_token, expires=tokens.refresh_expires_at, **opts)
    return response


def _token_response(tokens, message: str):
    response = jsonify(
        {
            "message": message,
            "access_token": tokens.access_token,
            "refresh_token": tokens.refresh_token,
            "token_type": "bearer",
            "expires_in": int(current_app.config["ACCESS_TOKEN_EXPIRES"].total_seconds()),
            "refresh_expires_at": tokens.refresh_expires_at.isoformat(),
            "username": tokens.username,
            "role": tokens.role,
        }
    )
    return _set_auth_cookies(response, tokens)


@bp.post("/register")
def register():
    """
    register a new user.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            username: { type: string }
            password: { type: string }
            role: { type: string, enum: [Admin, User] }
    responses:
      200:
        description: Registered
      400:
        description: Validation error
      409:
        description: Username already exists
    """
    payload = request.get_json(silent=True) or {}
    data = user_create_schema.load(payload)

    credentials = current_app.extensions["credentials"]
    user = credentials.create_user(data["username"], data["password"], data.get("role"))
    current_app.extensions["notifications"].create_for_user(user.id, f"Welcome, {user.username}!")

    return jsonify(
        {
            "message": "User registered successfully",
            "data": user_out_schema.dump(user)
        }
    ), 200


@bp.post("/login")
def login():
    """
    Login: return access_token and refresh_token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             username: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens, also set as cookies)
      401:
        description: Invalid password
      404:
        description: User not found
    """
    payload = request.get_json(silent=True) or {}
    data = user_login_schema.load(payload)

    tokens = _sessions().login(data["username"], data["password"], ip_address=_client_ip())
    return _token_response(tokens, "Login successful"), 200


@bp.post("/refresh")
def refresh():
    """
    Use refresh token to obtain new access and refresh tokens (rotation)
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refresh_token: { type: string, description: "falls back to the refreshToken cookie" }
    responses:
      200:
        description: New token pair
      401:
        description: Invalid, expired or already used refresh token
    """
    token = _presented_refresh_token()
    if not token:
        raise InvalidSession("No refresh token provided")

    tokens = _sessions().rotate(token, ip_address=_client_ip())
    return _token_response(tokens, "Token refreshed successfully"), 200


@bp.post("/logout")
def logout():
    """
    logout: revokes the refresh token and clears auth cookies
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: Logged out (also when the token was unknown or already revoked)
    """
    token = _presented_refresh_token()
    if token:
        _sessions().revoke_by_value(token, ip_address=_client_ip())

    response = jsonify({"message": "Logged out successfully"})
    response.delete_cookie(REFRESH_COOKIE)
    response.delete_cookie(ACCESS_COOKIE)
    return response, 200


@bp.get("/profile")
@jwt_required()
def profile():
    """
    Current user's claims
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    user = g.current_user
    return jsonify(
        {
            "user_id": user["user_id"],
            "username": user["username"],
            "role": user["role"],
        }
    ), 200
