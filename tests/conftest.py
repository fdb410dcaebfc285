"""Shared fixtures: an app on in-memory SQLite and model factories."""
import pytest

from duckie import create_app
from duckie.database import db
from duckie.models import CodeAnalysis, GitHubUser, Repository


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make(username='octocat', github_id=583231, **fields):
        user = GitHubUser(username=username, github_id=github_id, **fields)
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def make_repo(app):
    def _make(user, name='hello-world', language='Python', **fields):
        repo = Repository(
            github_user_id=user.id,
            repo_name=name,
            full_name=f"{user.username}/{name}",
            language=language,
            **fields
        )
        db.session.add(repo)
        db.session.commit()
        return repo
    return _make


@pytest.fixture
def make_analysis(app):
    def _make(repo, summary='Looks fine', **fields):
        analysis = CodeAnalysis(
            repository_id=repo.id,
            file_path=fields.pop('file_path', 'main.py'),
            language=repo.language,
            analysis_summary=summary,
            **fields
        )
        db.session.add(analysis)
        db.session.commit()
        return analysis
    return _make
