# duckie/modules/github/__init__.py

from flask import Blueprint

# GitHub 同步与代码分析入口，URL 前缀为 /github
github_bp = Blueprint('github', __name__, url_prefix='/github')

# 导入 views 文件，将路由注册到蓝图上
from . import views
