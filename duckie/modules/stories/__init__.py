from flask import Blueprint

# 创建一个名为 'stories' 的蓝图，URL 前缀为 /stories
stories_bp = Blueprint('stories', __name__, url_prefix='/stories')

from . import views
