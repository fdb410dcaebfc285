# duckie/modules/analysis/views.py

from flask import jsonify

from duckie.modules.analysis import analysis_bp
from duckie.modules.params import bool_arg, float_arg, get_json_body
from duckie.services.analysis_service import analysis_service


@analysis_bp.route('/debug-suggestions', methods=['POST'])
def debug_suggestions():
    """对一段代码给出即时调试建议"""
    data = get_json_body()
    result = analysis_service.debug_suggestions(
        data.get('code_snippet'),
        language=data.get('language'),
        context=data.get('context')
    )
    return jsonify(result), 200


@analysis_bp.route('/repository/<int:repository_id>/summary', methods=['GET'])
def repository_summary(repository_id):
    """仓库分析汇总：平均复杂度、bug 数、改进建议数"""
    result = analysis_service.repository_summary(
        repository_id,
        include_files=bool_arg('include_files'),
        complexity_threshold=float_arg('complexity_threshold', 5)
    )
    return jsonify(result), 200
