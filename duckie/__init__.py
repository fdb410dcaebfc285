# duckie/__init__.py

import logging

from flask import Flask, jsonify
from flask_cors import CORS

from config import config
from .database import db, utcnow
from .errors import DuckieError

logger = logging.getLogger(__name__)


def create_app(config_name='default'):
    """
    Flask 应用工厂函数。
    """
    app = Flask(__name__)

    # 1. 加载配置
    app.config.from_object(config[config_name])
    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    # 2. 注册数据库扩展
    db.init_app(app)

    # 3. 注册蓝图 (Blueprint)
    from duckie.modules.github import github_bp
    from duckie.modules.analysis import analysis_bp
    from duckie.modules.suggestions import suggestions_bp
    from duckie.modules.stories import stories_bp
    from duckie.modules.ducks import ducks_bp

    app.register_blueprint(github_bp)
    app.register_blueprint(analysis_bp)
    app.register_blueprint(suggestions_bp)
    app.register_blueprint(stories_bp)
    app.register_blueprint(ducks_bp)

    # 4. 注册 CORS 扩展
    CORS(app, supports_credentials=True)

    # 5. 业务异常统一转换成 JSON
    @app.errorhandler(DuckieError)
    def handle_duckie_error(error):
        if error.status_code >= 500:
            logger.error(f"[API] {error.__class__.__name__}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    # 6. 建表并写入鸭子人格（幂等）
    if app.config.get('AUTO_INIT_DB'):
        with app.app_context():
            init_database()

    @app.route('/')
    def index():
        return jsonify({
            'message': "🦆 Welcome to Duckie Storyteller for GitHub!",
            'endpoints': {
                'github': '/github/*',
                'analysis': '/analysis/*',
                'suggestions': '/api/suggestions/*',
                'stories': '/stories/*',
                'ducks': '/ducks/*',
                'health': '/health'
            }
        })

    @app.route('/health')
    def health():
        return jsonify({
            'status': 'healthy',
            'service': 'duckie-storyteller',
            'timestamp': utcnow().isoformat()
        })

    return app


def init_database():
    """创建所有表并写入人格目录，需要在 app_context 中调用"""
    from duckie import models  # noqa: F401  确保模型已注册
    from duckie.services.personality_service import personality_service

    db.create_all()
    personality_service.seed()
