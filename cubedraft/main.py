from flask import Blueprint, request, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from .models import db, User
from .services.drafts.sessions import get_active_session

main = Blueprint('main', __name__)

@main.route('/login', methods=['POST', 'OPTIONS'])
def login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    user = User.query.filter_by(username=data.get('username')).first()
    if user and user.check_password(data.get('password') or ''):
        login_user(user)
        return jsonify({"success": True, "user": user.to_dict()})
    return jsonify({"success": False, "message": "Invalid credentials"}), 401

@main.route('/register', methods=['POST', 'OPTIONS'])
def register():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''
    if not username or not password:
        return jsonify({"success": False, "message": "Username and password are required"}), 400
    if User.query.filter_by(username=username).first():
        return jsonify({"success": False, "message": "Username already exists"}), 400

    new_user = User(username=username)
    new_user.set_password(password)
    db.session.add(new_user)
    db.session.commit()
    login_user(new_user)
    return jsonify({"success": True, "user": new_user.to_dict()}), 201

@main.route('/check_login', methods=['GET', 'OPTIONS'])
def check_login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200

    @login_required
    def protected_check():
        return jsonify({"success": True, "user": current_user.to_dict()})

    return protected_check()

@main.route('/logout', methods=['POST', 'OPTIONS'])
@login_required
def logout():
    logout_user()
    return jsonify({"success": True})

@main.route('/drafts/active')
@login_required
def get_active_draft():
    session = get_active_session(current_user.draft_user_id)
    return jsonify({'session': session.to_dict() if session else None})
