import logging

import click
from flask import Blueprint, current_app, jsonify, render_template, request
from pymongo.errors import DuplicateKeyError, PyMongoError

from movie_catalog.api_users.users_functions import (
    build_user,
    find_user_by_email,
    read_credentials,
    serialize_user,
    upsert_admin,
    validate_registration,
    verify_password,
)
from movie_catalog.auth import issue_token
from movie_catalog.errors import AuthenticationError, ServerError, ValidationError
from movie_catalog.store import get_store

logger = logging.getLogger(__name__)

users_bp = Blueprint("users", __name__, cli_group=None)


def request_payload():
    """Return the JSON object body, or the submitted form when the body is not JSON."""
    payload = request.get_json(silent=True)
    if payload is None:
        payload = request.form.to_dict()
    return payload if isinstance(payload, dict) else {}


@users_bp.route("/auth/register", methods=["GET"])
def register_page():
    return render_template("auth_register.html", title="Register")


@users_bp.route("/auth/login", methods=["GET"])
def login_page():
    return render_template("auth_login.html", title="Login")


@users_bp.route("/auth/register", methods=["POST"])
def register():
    """
    Handle POST requests that create user accounts.

    Public registration always creates the ``user`` role.

    Returns:
        Response: Confirmation with 201, or error payload.
    """
    email, password = read_credentials(request_payload())
    error = validate_registration(email, password)
    if error:
        return ValidationError(error).to_response()

    users_collection = get_store().users
    try:
        if find_user_by_email(email, users_collection):
            return ValidationError("User already exists").to_response()
        users_collection.insert_one(build_user(email, password))
    except DuplicateKeyError:
        return ValidationError("User already exists").to_response()
    except PyMongoError:
        logger.exception("Register error")
        return ServerError().to_response()

    logger.info("Registered user %s", email)
    return jsonify({"message": "User registered successfully"}), 201


@users_bp.route("/auth/login", methods=["POST"])
def login():
    """
    Handle POST requests for user authentication.

    Returns:
        Response: Signed token and identity summary, or error payload.
    """
    email, password = read_credentials(request_payload())
    if not email or not password:
        return ValidationError("Email and password are required").to_response()

    try:
        user = find_user_by_email(email, get_store().users)
    except PyMongoError:
        logger.exception("Login error")
        return ServerError().to_response()

    if not verify_password(user, password):
        return AuthenticationError("Invalid credentials").to_response()

    summary = serialize_user(user)
    token = issue_token(
        summary["id"],
        summary["role"],
        current_app.config["JWT_SECRET"],
        current_app.config["JWT_EXPIRES_IN"],
    )
    return jsonify({"token": token, "user": summary})


@users_bp.cli.command("create-admin")
@click.argument("email")
@click.argument("password")
def create_admin_command(email: str, password: str):
    """Create an admin account, or promote an existing user to admin."""
    email, password = read_credentials({"email": email, "password": password})
    error = validate_registration(email, password)
    if error:
        raise click.BadParameter(error)

    created = upsert_admin(email, password, get_store().users)
    if created:
        click.echo(f"Created admin {email}")
    else:
        click.echo(f"Promoted {email} to admin")
