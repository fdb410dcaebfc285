from flask import Blueprint

# Issue 建议接口挂在 /api 下
suggestions_bp = Blueprint('suggestions', __name__, url_prefix='/api/suggestions')

from . import views
