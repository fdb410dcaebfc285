from flask import Blueprint

# 鸭子人格与彩蛋
ducks_bp = Blueprint('ducks', __name__, url_prefix='/ducks')

from . import views
