"""Analysis engine: file cap, truncation, degraded defaults, per-file isolation."""
import json
import threading

import pytest

from duckie.database import db
from duckie.errors import NotFoundError, UpstreamError
from duckie.models import CodeAnalysis, Repository
from duckie.services.analysis_service import AnalysisService, build_analysis_fields, default_analysis
from tests.stubs import StubGitHub, StubLLM

GOOD_ANALYSIS = json.dumps({
    "complexity_score": 3.5,
    "patterns_detected": ["factory"],
    "bugs_found": ["unclosed file handle"],
    "improvements_suggested": ["use a context manager"],
    "analysis_summary": "Small and readable module",
})


def _file(name, kind='file'):
    return {
        'name': name,
        'path': name,
        'type': kind,
        'download_url': f'https://raw.example/{name}' if kind == 'file' else None,
    }


@pytest.fixture
def repo(make_user, make_repo):
    return make_repo(make_user(), name='hello-world', language='Python')


def test_analyzes_files_and_stamps_last_analyzed(app, repo):
    github = StubGitHub(directory=[_file('a.py'), _file('b.py')])
    llm = StubLLM(GOOD_ANALYSIS)

    result = AnalysisService(github=github, llm=llm).analyze_repository('octocat', 'hello-world')

    assert result['analyzed_files'] == 2
    assert result['report']['succeeded'] == 2
    row = CodeAnalysis.query.filter_by(file_path='a.py').one()
    assert row.complexity_score == 3.5
    assert row.patterns_detected == ["factory"]
    assert row.bugs_found == ["unclosed file handle"]
    assert row.language == 'Python'
    assert db_repo(repo).last_analyzed is not None


def test_caps_processing_at_ten_entries(app, repo):
    github = StubGitHub(directory=[_file(f'f{i:02d}.py') for i in range(25)])
    llm = StubLLM(GOOD_ANALYSIS)

    result = AnalysisService(github=github, llm=llm).analyze_repository('octocat', 'hello-world')

    assert len(github.downloaded) == 10
    assert len(llm.calls) == 10
    assert result['analyzed_files'] == 10
    # order is exactly as listed, not re-sorted
    assert github.downloaded == [f'https://raw.example/f{i:02d}.py' for i in range(10)]


def test_directories_count_against_the_cap(app, repo):
    entries = [_file('src', kind='dir')] + [_file(f'f{i}.py') for i in range(12)]
    github = StubGitHub(directory=entries)

    result = AnalysisService(github=github, llm=StubLLM(GOOD_ANALYSIS)).analyze_repository(
        'octocat', 'hello-world')

    assert result['analyzed_files'] == 9
    assert result['report']['requested'] == 9


def test_prompt_is_truncated_but_lines_use_full_content(app, repo):
    content = ("x = 1\n" * 1000)
    github = StubGitHub(directory=[_file('big.py')], files={'https://raw.example/big.py': content})
    llm = StubLLM(GOOD_ANALYSIS)

    AnalysisService(github=github, llm=llm).analyze_repository('octocat', 'hello-world')

    prompt = llm.calls[0]['user']
    assert prompt.startswith("Analyze this big.py file:\n\n")
    assert len(prompt) == len("Analyze this big.py file:\n\n") + 2000
    assert CodeAnalysis.query.one().lines_of_code == 1001


def test_unparseable_output_uses_degraded_default(app, repo):
    github = StubGitHub(directory=[_file('a.py')])
    llm = StubLLM("This file is fine, quack!")

    result = AnalysisService(github=github, llm=llm).analyze_repository('octocat', 'hello-world')

    row = CodeAnalysis.query.one()
    assert row.complexity_score == 5
    assert row.patterns_detected == ["standard patterns"]
    assert row.bugs_found == []
    assert row.improvements_suggested == ["code review recommended"]
    assert row.analysis_summary == "Analysis completed"
    assert result['report']['fallbacks'] == 1


def test_failed_download_is_skipped_and_batch_continues(app, repo):
    github = StubGitHub(directory=[_file('a.py'), _file('b.py'), _file('c.py')],
                        failing_urls={'https://raw.example/b.py'})

    result = AnalysisService(github=github, llm=StubLLM(GOOD_ANALYSIS)).analyze_repository(
        'octocat', 'hello-world')

    assert result['analyzed_files'] == 2
    assert {r.file_path for r in CodeAnalysis.query.all()} == {'a.py', 'c.py'}
    skipped = [item for item in result['report']['items'] if item['status'] == 'skipped']
    assert [item['key'] for item in skipped] == ['b.py']


def test_inference_error_skips_the_file(app, repo):
    from duckie.errors import InferenceError

    github = StubGitHub(directory=[_file('a.py'), _file('b.py')])
    llm = StubLLM([InferenceError("AI 响应超时"), GOOD_ANALYSIS])

    result = AnalysisService(github=github, llm=llm).analyze_repository('octocat', 'hello-world')

    assert result['analyzed_files'] == 1
    assert CodeAnalysis.query.one().file_path == 'b.py'


def test_last_analyzed_is_stamped_even_when_nothing_succeeds(app, repo):
    github = StubGitHub(directory=[_file('a.py')], failing_urls={'https://raw.example/a.py'})

    result = AnalysisService(github=github, llm=StubLLM(GOOD_ANALYSIS)).analyze_repository(
        'octocat', 'hello-world')

    assert result['analyzed_files'] == 0
    assert db_repo(repo).last_analyzed is not None


def test_reanalysis_appends_history(app, repo):
    github = StubGitHub(directory=[_file('a.py')])
    service = AnalysisService(github=github, llm=StubLLM(GOOD_ANALYSIS))

    service.analyze_repository('octocat', 'hello-world')
    service.analyze_repository('octocat', 'hello-world')

    assert CodeAnalysis.query.filter_by(file_path='a.py').count() == 2


def test_unknown_repository_is_not_found_without_side_effects(app):
    github = StubGitHub(directory=[_file('a.py')])
    llm = StubLLM(GOOD_ANALYSIS)

    with pytest.raises(NotFoundError):
        AnalysisService(github=github, llm=llm).analyze_repository('octocat', 'missing')

    assert github.downloaded == []
    assert llm.calls == []


def test_directory_listing_failure_aborts(app, repo):
    class BrokenGitHub(StubGitHub):
        def fetch_directory(self, *args, **kwargs):
            raise UpstreamError("GitHub 返回错误状态 500", upstream_status=500)

    with pytest.raises(UpstreamError):
        AnalysisService(github=BrokenGitHub(), llm=StubLLM(GOOD_ANALYSIS)).analyze_repository(
            'octocat', 'hello-world')

    assert db_repo(repo).last_analyzed is None


def test_cancelled_batch_processes_no_further_files(app, repo):
    cancel = threading.Event()
    github = StubGitHub(directory=[_file('a.py'), _file('b.py'), _file('c.py')])

    def respond(system_prompt, user_prompt):
        cancel.set()
        return GOOD_ANALYSIS

    result = AnalysisService(github=github, llm=StubLLM(respond)).analyze_repository(
        'octocat', 'hello-world', cancel_event=cancel)

    assert result['analyzed_files'] == 1
    assert result['report']['cancelled'] is True
    assert db_repo(repo).last_analyzed is not None


def test_build_analysis_fields_fills_missing_keys_and_clamps():
    fields, parsed = build_analysis_fields('{"complexity_score": -2, "bugs_found": ["off by one"]}')

    assert parsed is True
    assert fields['complexity_score'] == 0
    assert fields['bugs_found'] == ["off by one"]
    assert fields['patterns_detected'] == default_analysis()['patterns_detected']
    assert fields['analysis_summary'] == "Analysis completed"


def test_repository_summary_aggregates(app, repo, make_analysis):
    make_analysis(repo, complexity_score=8, bugs_found=['a', 'b'], improvements_suggested=['x'])
    make_analysis(repo, complexity_score=6, bugs_found=['c'], improvements_suggested=[])
    make_analysis(repo, complexity_score=2, bugs_found=['ignored'])

    summary = AnalysisService().repository_summary(repo.id, include_files=True)

    stats = summary['analysis_summary']
    assert stats['total_files_analyzed'] == 2
    assert stats['average_complexity'] == 7
    assert stats['total_bugs_found'] == 3
    assert stats['total_improvements_suggested'] == 1
    assert len(summary['files']) == 2

    unfiltered = AnalysisService().repository_summary(repo.id, complexity_threshold=0)
    assert unfiltered['analysis_summary']['total_files_analyzed'] == 3


def test_debug_suggestions_falls_back_on_plain_text(app):
    result = AnalysisService(llm=StubLLM("Try adding logging.")).debug_suggestions(
        "def f(): return 1/0", language="python", context="cli")

    assert result['debug_analysis']['issues'] == ["Code analysis completed"]
    assert result['code_snippet'].endswith("...")


def db_repo(repo):
    return db.session.get(Repository, repo.id)


@pytest.mark.parametrize('raw_score, expected', [
    ('1e999', 5),
    ('Infinity', 5),
    ('42', 10),
])
def test_complexity_score_must_be_finite_and_in_range(raw_score, expected):
    fields, parsed = build_analysis_fields('{"complexity_score": %s}' % raw_score)

    assert parsed is True
    assert fields['complexity_score'] == expected


def test_infinite_complexity_does_not_skip_the_file(app, repo):
    github = StubGitHub(directory=[_file('a.py')])
    llm = StubLLM('{"complexity_score": 1e999, "analysis_summary": "huge"}')

    result = AnalysisService(github=github, llm=llm).analyze_repository('octocat', 'hello-world')

    assert result['analyzed_files'] == 1
    assert CodeAnalysis.query.one().complexity_score == 5
