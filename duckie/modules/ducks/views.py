# duckie/modules/ducks/views.py

from flask import jsonify

from duckie.modules.ducks import ducks_bp
from duckie.modules.params import bool_arg, get_json_body
from duckie.services.personality_service import personality_service
from duckie.services.story_service import story_service


@ducks_bp.route('/personalities', methods=['GET'])
def list_personalities():
    return jsonify(personality_service.list_personalities(include_assets=bool_arg('include_assets'))), 200


@ducks_bp.route('/easter-eggs/generate', methods=['POST'])
def generate_easter_eggs():
    data = get_json_body()
    result = story_service.generate_easter_eggs(
        data.get('context'),
        data.get('personality'),
        code_language=data.get('code_language')
    )
    return jsonify(result), 200


@ducks_bp.route('/personalities/<string:name>', methods=['GET'])
def get_personality(name):
    return jsonify(personality_service.get_personality(name)), 200
