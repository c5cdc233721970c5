import time

from flask import Blueprint, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from . import db

health_bp = Blueprint('health', __name__, url_prefix='/api/health')


@health_bp.route('', methods=['GET'])
def health():
    """健康检查；?type=db 时测试数据库连接"""
    if request.args.get('type') != 'db':
        return jsonify({'success': True, 'status': 'ok'})

    start = time.monotonic()
    try:
        db.session.execute(text('SELECT 1'))
    except SQLAlchemyError as exc:
        db.session.rollback()
        duration = int((time.monotonic() - start) * 1000)
        return jsonify({'success': False, 'error': str(exc), 'duration': f'{duration}ms'}), 500

    duration = int((time.monotonic() - start) * 1000)
    return jsonify({
        'success': True,
        'message': '数据库连接正常',
        'duration': f'{duration}ms',
        'latency': duration,
    })
