"""
Authentication: signup, login, profile, and bearer-token loading.

Tokens are signed with the app's SECRET_KEY through itsdangerous and
expire after TOKEN_MAX_AGE seconds. Flask-Login resolves them to a User
through ``load_user_from_request`` on every protected request.
"""

import logging

from flask import Blueprint, current_app, jsonify, request
from flask_login import LoginManager, current_user, login_required
from itsdangerous import BadSignature, URLSafeTimedSerializer

from exceptions import AuthError, InvalidArgument
from models import User, db
from storage import commit_changes
from utils import get_json_body, is_blank

logger = logging.getLogger(__name__)

TOKEN_SALT = 'moneymatic-auth-token'

login_manager = LoginManager()
auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config['SECRET_KEY'], salt=TOKEN_SALT)


def issue_token(user: User) -> str:
    return _serializer().dumps({'userId': user.id, 'email': user.email})


def _bearer_token(req):
    header = req.headers.get('Authorization', '')
    if not header.startswith('Bearer '):
        return None
    return header[len('Bearer '):].strip() or None


@login_manager.request_loader
def load_user_from_request(req):
    token = _bearer_token(req)
    if token is None:
        return None
    try:
        payload = _serializer().loads(token, max_age=current_app.config['TOKEN_MAX_AGE'])
    except BadSignature as exc:
        logger.info("Rejected bearer token: %s", exc.__class__.__name__)
        return None
    user_id = payload.get('userId') if isinstance(payload, dict) else None
    if not isinstance(user_id, int):
        return None
    return db.session.get(User, user_id)


@login_manager.unauthorized_handler
def unauthorized():
    if _bearer_token(request) is None:
        message = "No token provided"
    else:
        message = "Invalid or expired token"
    return jsonify({'message': message}), 401


@auth_bp.route('/signup', methods=['POST'])
def signup():
    data = get_json_body()
    name = data.get('name')
    email = data.get('email')
    password = data.get('password')
    if is_blank(name) or is_blank(email) or is_blank(password):
        raise InvalidArgument("Please provide name, email, and password")

    email = str(email).strip()
    if User.query.filter_by(email=email).first():
        raise InvalidArgument("User already exists")

    user = User(name=str(name).strip(), email=email)
    user.set_password(str(password))
    db.session.add(user)
    commit_changes(db.session, conflict_message="User already exists")
    logger.info("Registered user %s", user.id)

    return jsonify({
        'message': "User created successfully",
        'token': issue_token(user),
        'user': user.to_dict(),
    }), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    data = get_json_body()
    email = data.get('email')
    password = data.get('password')
    if is_blank(email) or is_blank(password):
        raise InvalidArgument("Please provide email and password")

    user = User.query.filter_by(email=str(email).strip()).first()
    if not user or not user.check_password(str(password)):
        raise AuthError("Invalid credentials")

    return jsonify({
        'message': "Login successful",
        'token': issue_token(user),
        'user': user.to_dict(),
    })


@auth_bp.route('/me', methods=['GET'])
@login_required
def get_profile():
    return jsonify({'user': current_user.to_dict(with_timestamps=True)})


@auth_bp.route('/me', methods=['PUT'])
@login_required
def update_profile():
    data = get_json_body()
    name = data.get('name')
    email = data.get('email')
    if is_blank(name) or is_blank(email):
        raise InvalidArgument("Name and email are required")

    email = str(email).strip()
    existing = User.query.filter_by(email=email).first()
    if existing and existing.id != current_user.id:
        raise InvalidArgument("Email already in use")

    current_user.name = str(name).strip()
    current_user.email = email
    commit_changes(db.session, conflict_message="Email already in use")

    return jsonify({
        'message': "Profile updated successfully",
        'user': current_user.to_dict(with_timestamps=True),
    })


@auth_bp.route('/me/password', methods=['PUT'])
@login_required
def change_password():
    data = get_json_body()
    current_password = data.get('currentPassword')
    new_password = data.get('newPassword')
    if is_blank(current_password) or is_blank(new_password):
        raise InvalidArgument("Current password and new password are required")

    min_length = current_app.config['MIN_PASSWORD_LENGTH']
    if len(str(new_password)) < min_length:
        raise InvalidArgument(f"New password must be at least {min_length} characters")

    if not current_user.check_password(str(current_password)):
        raise AuthError("Current password is incorrect")

    current_user.set_password(str(new_password))
    commit_changes(db.session)
    return jsonify({'message': "Password updated successfully"})
