# duckie/modules/suggestions/views.py

from flask import jsonify, request

from duckie.errors import ValidationError
from duckie.modules.params import bool_arg, get_json_body, int_arg
from duckie.modules.suggestions import suggestions_bp
from duckie.services.suggestion_service import (
    DEFAULT_MAX_SUGGESTIONS,
    REPO_NAME_MAX_SUGGESTIONS,
    suggestion_service,
)


def _as_list(value, field_name):
    if value is None:
        return None
    if not isinstance(value, list):
        raise ValidationError(f"{field_name} 必须是数组")
    return value


# --------------------
# 生成建议
# POST /api/suggestions/generate
# --------------------
@suggestions_bp.route('/generate', methods=['POST'])
def generate_suggestions():
    data = get_json_body()
    if data.get('repository_id') is None:
        raise ValidationError("缺少 repository_id")

    result = suggestion_service.generate(
        data.get('repository_id'),
        suggestion_types=_as_list(data.get('suggestion_types'), 'suggestion_types'),
        difficulty_levels=_as_list(data.get('difficulty_levels'), 'difficulty_levels'),
        max_suggestions=data.get('max_suggestions', DEFAULT_MAX_SUGGESTIONS)
    )
    return jsonify(result), 200


# --------------------
# 按 owner/repo 名字生成建议
# POST /api/suggestions/generate-for-repo
# --------------------
@suggestions_bp.route('/generate-for-repo', methods=['POST'])
def generate_suggestions_for_repo():
    data = get_json_body()
    result = suggestion_service.generate_for_repository(
        data.get('username'),
        data.get('repo_name'),
        suggestion_types=_as_list(data.get('suggestion_types'), 'suggestion_types'),
        difficulty_levels=_as_list(data.get('difficulty_levels'), 'difficulty_levels'),
        max_suggestions=data.get('max_suggestions', REPO_NAME_MAX_SUGGESTIONS)
    )
    return jsonify(result), 200


# --------------------
# 查询仓库的建议列表
# GET /api/suggestions/repository/<repo_id>?type=feature&priority=high&implemented=false
# --------------------
@suggestions_bp.route('/repository/<int:repo_id>', methods=['GET'])
def list_suggestions(repo_id):
    result = suggestion_service.list_suggestions(
        repo_id,
        suggestion_type=request.args.get('type'),
        priority=request.args.get('priority'),
        difficulty=request.args.get('difficulty'),
        implemented=bool_arg('implemented', default=None),
        limit=int_arg('limit', 20)
    )
    return jsonify(result), 200


# --------------------
# 标记建议已实现（外部系统回写）
# PUT /api/suggestions/<id>/implemented
# --------------------
@suggestions_bp.route('/<int:suggestion_id>/implemented', methods=['PUT'])
def mark_implemented(suggestion_id):
    data = get_json_body()
    result = suggestion_service.mark_implemented(
        suggestion_id,
        is_implemented=data.get('is_implemented', True),
        github_issue_url=data.get('github_issue_url')
    )
    return jsonify({'message': '状态已更新', **result}), 200
