# duckie/services/analysis_service.py

import logging

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from duckie.database import db, utcnow
from duckie.errors import NotFoundError, UpstreamError, ValidationError
from duckie.models import CodeAnalysis, Repository
from duckie.services.batch_report import FALLBACK, SKIPPED, SUCCESS, BatchReport
from duckie.services.github_service import github_service
from duckie.services.llm_parsing import as_non_negative_number, as_string_list, parse_json_object
from duckie.services.llm_service import llm_service

logger = logging.getLogger(__name__)

ANALYSIS_SYSTEM_PROMPT = (
    "You are a code analysis expert. Analyze the provided code and return a JSON object with: "
    "complexity_score (0-10), patterns_detected (array), bugs_found (array), "
    "improvements_suggested (array), analysis_summary (string)."
)

DEBUG_SYSTEM_PROMPT = (
    "You are a debugging expert. Analyze the code and provide specific debugging suggestions, "
    "potential issues, and fixes. Respond in JSON format with: issues (array), "
    "suggestions (array), fixes (array)."
)


# 复杂度评分的取值范围是 0-10
MAX_COMPLEXITY_SCORE = 10


def default_analysis() -> dict:
    """模型输出无法解析时使用的降级结果（每次返回新字典，避免共享可变列表）"""
    return {
        'complexity_score': 5,
        'patterns_detected': ["standard patterns"],
        'bugs_found': [],
        'improvements_suggested': ["code review recommended"],
        'analysis_summary': "Analysis completed"
    }


def default_debug_analysis() -> dict:
    return {
        'issues': ["Code analysis completed"],
        'suggestions': ["Review code logic and error handling"],
        'fixes': ["Consider adding proper error handling"]
    }


def build_analysis_fields(response_text: str):
    """
    把模型回复转换成分析字段。
    返回 (fields, parsed)：parsed 为 False 表示使用了降级默认值。
    解析成功但缺字段时，用默认值补齐对应字段。
    """
    defaults = default_analysis()
    parsed = parse_json_object(response_text)
    if parsed is None:
        return defaults, False

    fields = {
        'complexity_score': as_non_negative_number(parsed.get('complexity_score'),
                                                   defaults['complexity_score'], MAX_COMPLEXITY_SCORE),
        'analysis_summary': str(parsed.get('analysis_summary') or defaults['analysis_summary']),
    }
    for key in ('patterns_detected', 'bugs_found', 'improvements_suggested'):
        fields[key] = as_string_list(parsed[key]) if key in parsed else defaults[key]
    return fields, True


def count_lines(content: str) -> int:
    return len(content.split('\n'))


def recent_analyses(repository_id: int, limit: int):
    """最近的分析记录，按创建时间倒序"""
    return CodeAnalysis.query.filter_by(repository_id=repository_id).order_by(
        CodeAnalysis.created_at.desc(), CodeAnalysis.id.desc()
    ).limit(limit).all()


class AnalysisService:
    """
    代码分析服务：逐个文件调用大模型，把结果写入 code_analysis 表。
    单个文件失败只会被跳过，不会中断整批分析。
    """

    def __init__(self, github=None, llm=None):
        self.github = github or github_service
        self.llm = llm or llm_service

    def analyze_repository(self, username: str, repo_name: str, branch: str = 'main',
                           cancel_event=None) -> dict:
        if not username or not repo_name:
            raise ValidationError("缺少 username 或 repo_name")

        # 1. 仓库必须已经同步过（不做隐式同步）
        full_name = f"{username}/{repo_name}"
        repository = Repository.query.filter_by(full_name=full_name).first()
        if not repository:
            raise NotFoundError(f"仓库 {full_name} 不在数据库中，请先同步用户")

        # 2. 获取根目录内容（失败直接抛 UpstreamError）
        contents = self.github.fetch_directory(username, repo_name, path='', ref=branch or 'main')

        max_files = current_app.config.get('ANALYSIS_MAX_FILES', 10)
        prompt_chars = current_app.config.get('ANALYSIS_PROMPT_CHARS', 2000)

        # 只看前 max_files 个条目（保持 GitHub 返回的顺序），其中只处理普通文件
        files = [entry for entry in contents[:max_files]
                 if entry.get('type') == 'file' and entry.get('download_url')]

        report = BatchReport(requested=len(files))
        analysis_results = []

        for entry in files:
            if cancel_event is not None and cancel_event.is_set():
                report.cancelled = True
                logger.warning(f"[Analysis] {full_name} 的分析被取消，已完成 {report.attempted} 个文件")
                break

            file_path = entry.get('path') or entry.get('name') or 'unknown'
            try:
                analysis, parsed = self._analyze_file(repository, entry, file_path, prompt_chars)
            except UpstreamError as e:
                logger.error(f"[Analysis] 分析文件 {file_path} 失败，跳过: {e}")
                report.record(file_path, SKIPPED, detail=str(e))
                continue
            except SQLAlchemyError as e:
                db.session.rollback()
                logger.error(f"[Analysis] 保存文件 {file_path} 的分析结果失败，跳过: {e}")
                report.record(file_path, SKIPPED, detail='database error')
                continue

            analysis_results.append(analysis.to_dict())
            report.record(file_path, SUCCESS if parsed else FALLBACK, records=1)

        # 3. 所有文件处理完之后再更新 last_analyzed（即使一个都没成功）
        repository.last_analyzed = utcnow()
        db.session.commit()

        logger.info(f"[Analysis] {full_name} 分析完成: {report.succeeded} 成功, "
                    f"{report.fallbacks} 降级, {report.skipped} 跳过")
        return {
            'repository': {'id': repository.id, 'name': repository.repo_name},
            'analysis_results': analysis_results,
            'analyzed_files': len(analysis_results),
            'report': report.to_dict()
        }

    def _analyze_file(self, repository: Repository, entry: dict, file_path: str, prompt_chars: int):
        content = self.github.fetch_file_content(entry['download_url'])

        # 只把前 prompt_chars 个字符发给模型，行数按完整内容统计
        user_prompt = f"Analyze this {entry.get('name') or file_path} file:\n\n{content[:prompt_chars]}"
        response = self.llm.complete(ANALYSIS_SYSTEM_PROMPT, user_prompt,
                                     model=current_app.config.get('LLM_ANALYSIS_MODEL'))
        fields, parsed = build_analysis_fields(response)
        if not parsed:
            logger.warning(f"[Analysis] {file_path} 的模型输出不是合法 JSON，使用默认结果")

        analysis = CodeAnalysis(
            repository_id=repository.id,
            file_path=file_path,
            language=repository.language,
            lines_of_code=count_lines(content),
            **fields
        )
        db.session.add(analysis)
        db.session.commit()
        return analysis, parsed

    def repository_summary(self, repository_id: int, include_files: bool = False,
                           complexity_threshold: float = 5) -> dict:
        """汇总仓库的分析结果；complexity_threshold 为 0 时不过滤"""
        repository = db.session.get(Repository, repository_id)
        if not repository:
            raise NotFoundError("Repository not found")

        query = CodeAnalysis.query.filter_by(repository_id=repository_id)
        if complexity_threshold:
            query = query.filter(CodeAnalysis.complexity_score >= complexity_threshold)
        analyses = query.order_by(CodeAnalysis.created_at.desc(), CodeAnalysis.id.desc()).all()

        total = len(analyses)
        average = sum((a.complexity_score or 0) for a in analyses) / total if total else 0

        summary = {
            'repository': {
                'id': repository.id,
                'name': repository.repo_name,
                'language': repository.language,
                'last_analyzed': repository.last_analyzed.isoformat() if repository.last_analyzed else None
            },
            'analysis_summary': {
                'total_files_analyzed': total,
                'average_complexity': average,
                'total_bugs_found': sum(len(a.bugs_found or []) for a in analyses),
                'total_improvements_suggested': sum(len(a.improvements_suggested or []) for a in analyses)
            }
        }
        if include_files:
            summary['files'] = [a.to_dict() for a in analyses]
        return summary

    def debug_suggestions(self, code_snippet: str, language: str = None, context: str = None) -> dict:
        """针对一段代码的即时调试建议，不落库"""
        if not code_snippet:
            raise ValidationError("Code snippet is required")

        response = self.llm.complete(
            DEBUG_SYSTEM_PROMPT,
            f"Debug this {language} code in {context} context:\n\n{code_snippet}",
            model=current_app.config.get('LLM_ANALYSIS_MODEL')
        )

        parsed = parse_json_object(response)
        if parsed is None:
            debug_data = default_debug_analysis()
        else:
            debug_data = {key: as_string_list(parsed.get(key)) for key in ('issues', 'suggestions', 'fixes')}

        return {
            'code_snippet': code_snippet[:200] + "...",
            'language': language,
            'context': context,
            'debug_analysis': debug_data
        }


analysis_service = AnalysisService()
