"""
Authentication routes and utilities
"""
from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from sqlalchemy import or_

from app import db, login_manager
from app.models import AuditLog, User

auth_bp = Blueprint('auth', __name__)


@login_manager.unauthorized_handler
def unauthorized():
    """API clients get JSON instead of a redirect"""
    return jsonify({"ok": False, "error": "Authentication required"}), 401


def log_audit_event(event_type, description, user=None):
    """Log audit event"""
    user = user or (current_user if current_user.is_authenticated else None)
    if user is None:
        return
    audit_log = AuditLog(
        organization_id=user.organization_id,
        user_id=user.id,
        event_type=event_type,
        event_description=description,
        ip_address=request.remote_addr,
    )
    db.session.add(audit_log)
    db.session.commit()


@auth_bp.route('/login', methods=['POST'])
def login():
    """User login (JSON or form)"""
    payload = request.get_json(silent=True) or request.form
    identifier = (payload.get('username') or payload.get('email') or '').strip()
    password = payload.get('password') or ''

    if not identifier or not password:
        return jsonify({"ok": False, "error": "Username and password are required"}), 400

    user = User.query.filter(
        or_(User.username == identifier, User.email == identifier.lower())
    ).first()

    if user is None or not user.check_password(password):
        return jsonify({"ok": False, "error": "Invalid username or password"}), 401

    login_user(user, remember=bool(payload.get('remember')))
    log_audit_event('user_login', f'User {user.username} logged in', user=user)
    return jsonify({"ok": True, "user": user.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """User logout"""
    log_audit_event('user_logout', f'User {current_user.username} logged out')
    logout_user()
    return jsonify({"ok": True})
