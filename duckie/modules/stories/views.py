# duckie/modules/stories/views.py

from flask import jsonify, request

from duckie.modules.params import bool_arg, get_json_body, int_arg
from duckie.modules.stories import stories_bp
from duckie.services.story_service import story_service


# --------------------
# 路由 1：生成故事
# POST /stories/generate
# --------------------
@stories_bp.route('/generate', methods=['POST'])
def generate_story():
    data = get_json_body()
    result = story_service.generate(
        data.get('github_user_id'),
        data.get('repository_id'),
        data.get('story_type'),
        data.get('duck_personality'),
        tone=data.get('tone') or 'professional'
    )
    return jsonify(result), 201


# --------------------
# 路由 2：查询用户的故事（分页）
# GET /stories/user/<username>?story_type=debugging&published_only=true&limit=10&offset=0
# --------------------
@stories_bp.route('/user/<string:username>', methods=['GET'])
def list_user_stories(username):
    result = story_service.list_stories(
        username,
        story_type=request.args.get('story_type'),
        published_only=bool_arg('published_only'),
        limit=int_arg('limit', 10),
        offset=int_arg('offset', 0)
    )
    return jsonify(result), 200


# --------------------
# 路由 3：标记故事已发布
# PUT /stories/<id>/publish
# --------------------
@stories_bp.route('/<int:story_id>/publish', methods=['PUT'])
def publish_story(story_id):
    data = get_json_body()
    result = story_service.publish(story_id, data.get('published_url'))
    return jsonify(result), 200
