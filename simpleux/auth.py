from functools import wraps

from flask import Blueprint, request, session, g, jsonify
from werkzeug.security import generate_password_hash, check_password_hash

from .models import User
from .errors import json_error
from . import db

auth_bp = Blueprint('auth', __name__)

NOT_LOGGED_IN = '未登录'


def get_current_user():
    """从 session 取当前用户，session 里的 id 已失效时返回 None"""
    user_id = session.get('user_id')
    if not user_id:
        return None
    return db.session.get(User, user_id)


# 登录检查装饰器，未登录统一返回 401 JSON
def login_required(view):
    @wraps(view)
    def wrapped_view(**kwargs):
        user = get_current_user()
        if user is None:
            return json_error(NOT_LOGGED_IN, 401)
        g.user = user
        return view(**kwargs)
    return wrapped_view


def _json_body():
    """解析请求体，必须是 JSON 对象，否则返回 None"""
    data = request.get_json(silent=True)
    if data is None and not request.data:
        return {}
    return data if isinstance(data, dict) else None


@auth_bp.route('/register', methods=['POST'])
def register():
    data = _json_body()
    if data is None:
        return json_error('请求体必须是 JSON 对象', 400)
    username = str(data.get('username') or '').strip()
    email = str(data.get('email') or '').strip()
    password = data.get('password')
    real_name = str(data.get('realName') or '').strip() or None

    if not username or not email or not password:
        return json_error('请填写所有必填项', 400)

    # 检查是否已存在
    exists = User.query.filter(
        (User.username == username) | (User.email == email)
    ).first()
    if exists:
        return json_error('用户名或邮箱已被占用', 400)

    # 创建用户，密码用哈希保存
    user = User(
        username=username,
        email=email,
        real_name=real_name,
        password_hash=generate_password_hash(password),
    )
    db.session.add(user)
    db.session.commit()

    return jsonify({'success': True, 'data': user.to_dict()})


@auth_bp.route('/login', methods=['POST'])
def login():
    data = _json_body()
    if data is None:
        return json_error('请求体必须是 JSON 对象', 400)
    name_or_email = str(data.get('username') or '').strip()
    password = data.get('password') or ''

    user = User.query.filter(
        (User.username == name_or_email) | (User.email == name_or_email)
    ).first()

    if user and check_password_hash(user.password_hash, password):
        session['user_id'] = user.id
        return jsonify({'success': True, 'data': user.to_dict()})

    return json_error('用户名/邮箱或密码错误', 401)


@auth_bp.route('/logout', methods=['POST'])
def logout():
    session.pop('user_id', None)
    return jsonify({'success': True})


@auth_bp.route('/me')
@login_required
def me():
    return jsonify({'success': True, 'data': g.user.to_dict()})
