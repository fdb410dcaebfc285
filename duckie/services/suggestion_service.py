# duckie/services/suggestion_service.py

import logging
import math

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from duckie.database import db, utcnow
from duckie.errors import InferenceError, NotFoundError, ValidationError
from duckie.models import DIFFICULTIES, PRIORITIES, SUGGESTION_TYPES, Repository, Suggestion
from duckie.services.analysis_service import recent_analyses
from duckie.services.batch_report import FALLBACK, SKIPPED, SUCCESS, BatchReport
from duckie.services.llm_parsing import as_non_negative_number, as_string_list, extract_json_array
from duckie.services.llm_service import llm_service

logger = logging.getLogger(__name__)

DEFAULT_SUGGESTION_TYPES = ('feature', 'bug_fix', 'improvement')
DEFAULT_DIFFICULTY_LEVELS = ('beginner', 'intermediate')
DEFAULT_MAX_SUGGESTIONS = 10
# 按 owner/repo 名字生成时的默认值
REPO_NAME_SUGGESTION_TYPES = ('feature', 'improvement')
REPO_NAME_MAX_SUGGESTIONS = 5
# 每次最多处理的类别数（限制外部调用次数）
MAX_SUGGESTION_TYPES = 3
# 作为上下文的最近分析条数
CONTEXT_ANALYSES = 5

DEFAULT_PRIORITY = 'medium'
DEFAULT_ESTIMATED_HOURS = 4
# 单条建议的工时上限，超出的估算按上限入库
MAX_ESTIMATED_HOURS = 1000
DEFAULT_WISDOM = "🦆 Quack! Every improvement makes the code happier!"
TEXT_FALLBACK_WISDOM = "🦆 Every great feature starts with a quack of inspiration!"
ERROR_FALLBACK_WISDOM = "🦆 Even when AI gets confused, there's always room for improvement!"
ERROR_FALLBACK_REASONING = "Fallback suggestion due to AI processing error"
# 文本降级时截取的原始回复长度
FALLBACK_DESCRIPTION_CHARS = 500


def allocate_budget(max_suggestions: int, type_count: int) -> int:
    """
    每个类别的目标数量 = ceil(max / 类别数)。
    不能整除时总数会超过 max_suggestions，这是刻意保留的行为。
    """
    return math.ceil(max_suggestions / type_count)


def _label(suggestion_type: str) -> str:
    return suggestion_type.replace('_', ' ')


def _reasoning(suggestion_type: str) -> str:
    return f"Generated based on repository analysis and {suggestion_type} patterns"


def _fallback_tags(repository: Repository, suggestion_type: str) -> list:
    language = (repository.language or '').lower()
    return [tag for tag in (language, suggestion_type) if tag]


def build_suggestion_prompt(repository: Repository, suggestion_type: str, difficulty_levels,
                            per_type: int, analyses) -> str:
    analysis_lines = "\n".join(f"- {a.analysis_summary}" for a in analyses if a.analysis_summary)
    return f"""Analyze this {repository.language} repository "{repository.repo_name}" and suggest {suggestion_type} improvements.

Repository Description: {repository.description or "No description"}
Language: {repository.language}
Stars: {repository.stars}

Recent Code Analysis:
{analysis_lines or "- No analysis yet"}

Generate {per_type} specific {suggestion_type} suggestions with:
1. Clear title
2. Detailed description
3. Priority ({'/'.join(PRIORITIES)})
4. Difficulty ({'/'.join(difficulty_levels)})
5. Estimated hours
6. Relevant tags
7. Duck-themed wisdom

Format as JSON array with these fields: title, description, priority, difficulty, estimated_hours, tags, duck_wisdom"""


def normalize_suggestion(item: dict, repository: Repository, suggestion_type: str,
                         difficulty_levels) -> dict:
    """把模型给出的一条建议规整成可入库的字段，非法枚举值回退到默认值"""
    title = str(item.get('title') or f"{_label(suggestion_type)} suggestion for {repository.repo_name}")

    priority = str(item.get('priority') or '').lower()
    if priority not in PRIORITIES:
        priority = DEFAULT_PRIORITY

    # 只接受调用方允许的难度
    difficulty = str(item.get('difficulty') or '').lower()
    if difficulty not in difficulty_levels:
        difficulty = difficulty_levels[0]

    hours = int(as_non_negative_number(item.get('estimated_hours'), DEFAULT_ESTIMATED_HOURS,
                                       MAX_ESTIMATED_HOURS))

    return {
        'suggestion_type': suggestion_type,
        'title': title[:512],
        'description': str(item.get('description') or title),
        'priority': priority,
        'difficulty': difficulty,
        'estimated_hours': hours or DEFAULT_ESTIMATED_HOURS,
        'tags': as_string_list(item.get('tags')),
        'ai_reasoning': _reasoning(suggestion_type),
        'duck_wisdom': str(item.get('duck_wisdom') or DEFAULT_WISDOM),
    }


def text_fallback_suggestion(raw_response: str, repository: Repository, suggestion_type: str,
                             difficulty_levels) -> dict:
    """回复里没有可用的 JSON 数组：用原始文本合成一条建议"""
    return {
        'suggestion_type': suggestion_type,
        'title': f"{_label(suggestion_type)} suggestion for {repository.repo_name}",
        'description': (raw_response or '')[:FALLBACK_DESCRIPTION_CHARS],
        'priority': DEFAULT_PRIORITY,
        'difficulty': difficulty_levels[0],
        'estimated_hours': DEFAULT_ESTIMATED_HOURS,
        'tags': _fallback_tags(repository, suggestion_type),
        'ai_reasoning': _reasoning(suggestion_type),
        'duck_wisdom': TEXT_FALLBACK_WISDOM,
    }


def error_fallback_suggestion(repository: Repository, suggestion_type: str, difficulty_levels) -> dict:
    """模型调用本身失败：合成一条通用建议"""
    label = _label(suggestion_type)
    return {
        'suggestion_type': suggestion_type,
        'title': f"Improve {label} in {repository.repo_name}",
        'description': (f"Consider enhancing the {label} aspects of this {repository.language} project "
                        f"to improve code quality and user experience."),
        'priority': DEFAULT_PRIORITY,
        'difficulty': difficulty_levels[0],
        'estimated_hours': DEFAULT_ESTIMATED_HOURS,
        'tags': _fallback_tags(repository, suggestion_type),
        'ai_reasoning': ERROR_FALLBACK_REASONING,
        'duck_wisdom': ERROR_FALLBACK_WISDOM,
    }


def _validate_choices(values, allowed, field_name: str) -> list:
    values = [str(v).strip().lower() for v in values]
    invalid = [v for v in values if v not in allowed]
    if invalid:
        raise ValidationError(f"{field_name} 包含非法取值: {', '.join(invalid)}")
    return values


class SuggestionService:
    """
    Issue 建议生成服务：按类别分配数量预算，每个类别调用一次大模型。
    无论模型输出什么（甚至调用失败），每个类别至少产出一条建议。
    """

    def __init__(self, llm=None):
        self.llm = llm or llm_service

    def generate(self, repository_id: int, suggestion_types=None, difficulty_levels=None,
                 max_suggestions: int = DEFAULT_MAX_SUGGESTIONS, cancel_event=None) -> dict:
        # 1. 参数校验（校验失败不写任何数据）
        # 只有前 MAX_SUGGESTION_TYPES 个类别会被处理，也只校验这些
        types = list(suggestion_types or DEFAULT_SUGGESTION_TYPES)[:MAX_SUGGESTION_TYPES]
        considered = _validate_choices(types, SUGGESTION_TYPES, 'suggestion_types')
        if difficulty_levels is None:
            difficulty_levels = DEFAULT_DIFFICULTY_LEVELS
        if not difficulty_levels:
            raise ValidationError("difficulty_levels 不能为空")
        difficulties = _validate_choices(difficulty_levels, DIFFICULTIES, 'difficulty_levels')
        try:
            max_suggestions = int(max_suggestions)
        except (TypeError, ValueError):
            raise ValidationError("max_suggestions 必须是整数")
        if max_suggestions < 1:
            raise ValidationError("max_suggestions 必须大于 0")

        repository = db.session.get(Repository, repository_id)
        if not repository:
            raise NotFoundError("Repository not found")

        # 2. 预算分配
        per_type = allocate_budget(max_suggestions, len(considered))
        analyses = recent_analyses(repository.id, CONTEXT_ANALYSES)

        report = BatchReport(requested=len(considered))
        saved = []

        # 3. 逐个类别生成
        for suggestion_type in considered:
            if cancel_event is not None and cancel_event.is_set():
                report.cancelled = True
                logger.warning(f"[Suggestion] 仓库 {repository.full_name} 的建议生成被取消")
                break

            rows, status, detail = self._generate_for_type(repository, suggestion_type, difficulties,
                                                           per_type, analyses)
            try:
                models = self._persist(repository, rows)
            except SQLAlchemyError as e:
                db.session.rollback()
                logger.error(f"[Suggestion] 保存 {suggestion_type} 建议失败: {e}")
                report.record(suggestion_type, SKIPPED, detail='database error')
                continue

            saved.extend(models)
            report.record(suggestion_type, status, detail=detail, records=len(models))

        logger.info(f"[Suggestion] 仓库 {repository.full_name} 生成 {len(saved)} 条建议 "
                    f"(每类目标 {per_type}, 上限 {max_suggestions})")
        return {
            'repository': {
                'id': repository.id,
                'name': repository.repo_name,
                'language': repository.language
            },
            'suggestions': [s.to_dict() for s in saved],
            'generated_count': len(saved),
            'max_suggestions': max_suggestions,
            'per_type_target': per_type,
            'report': report.to_dict(),
            'duck_message': "🦆 Fresh ideas hatched! These suggestions are ready to make your code shine!"
        }

    def generate_for_repository(self, username: str, repo_name: str, suggestion_types=None,
                                difficulty_levels=None, max_suggestions: int = REPO_NAME_MAX_SUGGESTIONS,
                                cancel_event=None) -> dict:
        """按 owner/repo 名字定位已同步的仓库后生成建议"""
        if not username or not repo_name:
            raise ValidationError("缺少 username 或 repo_name")

        full_name = f"{username}/{repo_name}"
        repository = Repository.query.filter_by(full_name=full_name).first()
        if not repository:
            raise NotFoundError(f"仓库 {full_name} 不在数据库中，请先同步用户")

        return self.generate(
            repository.id,
            suggestion_types=suggestion_types or REPO_NAME_SUGGESTION_TYPES,
            difficulty_levels=difficulty_levels,
            max_suggestions=max_suggestions,
            cancel_event=cancel_event
        )

    def _generate_for_type(self, repository: Repository, suggestion_type: str, difficulties,
                           per_type: int, analyses):
        """返回 (建议字段列表, 状态, 说明)，列表至少有一条且不超过 per_type"""
        prompt = build_suggestion_prompt(repository, suggestion_type, difficulties, per_type, analyses)
        try:
            response = self.llm.complete(None, prompt, model=current_app.config.get('LLM_ANALYSIS_MODEL'))
        except InferenceError as e:
            logger.error(f"[Suggestion] {suggestion_type} 生成失败，使用兜底建议: {e}")
            return [error_fallback_suggestion(repository, suggestion_type, difficulties)], FALLBACK, str(e)

        items = extract_json_array(response)
        candidates = [normalize_suggestion(item, repository, suggestion_type, difficulties)
                      for item in (items or []) if isinstance(item, dict)]
        if not candidates:
            logger.warning(f"[Suggestion] {suggestion_type} 的回复中没有可用的 JSON 数组，按文本降级")
            return ([text_fallback_suggestion(response, repository, suggestion_type, difficulties)],
                    FALLBACK, 'no parseable JSON array')

        return candidates[:per_type], SUCCESS, ''

    def _persist(self, repository: Repository, rows: list) -> list:
        now = utcnow()
        models = [Suggestion(repository_id=repository.id, generated_at=now, **row) for row in rows]
        db.session.add_all(models)
        db.session.commit()
        return models

    def list_suggestions(self, repository_id: int, suggestion_type: str = None, priority: str = None,
                         difficulty: str = None, implemented=None, limit: int = 20) -> dict:
        query = Suggestion.query.filter_by(repository_id=repository_id)
        if suggestion_type:
            query = query.filter(Suggestion.suggestion_type == suggestion_type)
        if priority:
            query = query.filter(Suggestion.priority == priority)
        if difficulty:
            query = query.filter(Suggestion.difficulty == difficulty)
        if implemented is not None:
            query = query.filter(Suggestion.is_implemented == bool(implemented))

        suggestions = query.order_by(Suggestion.generated_at.desc(), Suggestion.id.desc()).limit(limit).all()
        return {
            'suggestions': [s.to_dict() for s in suggestions],
            'count': len(suggestions),
            'duck_message': ("🦆 Here are your brilliant ideas! Ready to turn them into reality?"
                             if suggestions else
                             "🦆 No suggestions yet, but every great project starts somewhere!")
        }

    def mark_implemented(self, suggestion_id: int, is_implemented: bool = True,
                         github_issue_url: str = None) -> dict:
        """外部系统回写实现状态；这是唯一修改已生成建议的入口"""
        suggestion = db.session.get(Suggestion, suggestion_id)
        if not suggestion:
            raise NotFoundError("Suggestion not found")

        suggestion.is_implemented = bool(is_implemented)
        if github_issue_url:
            suggestion.github_issue_url = github_issue_url
        suggestion.updated_at = utcnow()
        db.session.commit()
        return {'suggestion': suggestion.to_dict()}


suggestion_service = SuggestionService()
