# duckie/modules/github/views.py

from flask import jsonify, request

from duckie.modules.github import github_bp
from duckie.modules.params import get_json_body, int_arg
from duckie.services.analysis_service import analysis_service
from duckie.services.sync_service import sync_service


# --------------------
# 路由 1：同步 GitHub 用户及其仓库
# POST /github/sync-user
# --------------------
@github_bp.route('/sync-user', methods=['POST'])
def sync_user():
    data = get_json_body()
    result = sync_service.sync_user(data.get('username'), bool(data.get('include_private', False)))
    return jsonify({'message': f"成功同步 {result['synced_count']} 个仓库", **result}), 200


# --------------------
# 路由 2：查询已同步的仓库
# GET /github/users/<username>/repos?language=Python&sort_by=stars
# --------------------
@github_bp.route('/users/<string:username>/repos', methods=['GET'])
def list_user_repos(username):
    result = sync_service.list_repositories(
        username,
        language=request.args.get('language'),
        sort_by=request.args.get('sort_by', 'updated_at'),
        limit=int_arg('limit', 20),
        offset=int_arg('offset', 0)
    )
    return jsonify(result), 200


# --------------------
# 路由 3：分析仓库代码
# POST /github/analyze-repo
# --------------------
@github_bp.route('/analyze-repo', methods=['POST'])
def analyze_repo():
    data = get_json_body()
    result = analysis_service.analyze_repository(
        data.get('username'),
        data.get('repo_name'),
        branch=data.get('branch') or 'main'
    )
    return jsonify({'message': f"分析完成，共 {result['analyzed_files']} 个文件", **result}), 200
