"""HTTP surface: routing, error JSON shape, seeded personalities."""
import pytest

from duckie.models import Personality
from duckie.personalities import DEFAULT_CATALOG
from duckie.services.personality_service import personality_service
from duckie.services.story_service import story_service
from duckie.services.suggestion_service import suggestion_service
from duckie.services.sync_service import sync_service
from tests.stubs import StubGitHub, StubLLM


def test_health(client):
    response = client.get('/health')

    assert response.status_code == 200
    assert response.get_json()['status'] == 'healthy'


def test_sync_user_requires_username(client):
    response = client.post('/github/sync-user', json={})

    assert response.status_code == 400
    body = response.get_json()
    assert body['error'] == 'ValidationError'
    assert body['message']


def test_sync_user_roundtrip(client, monkeypatch):
    github = StubGitHub(
        profile={'username': 'octocat', 'github_id': 583231, 'followers': 3},
        repos=[{'name': 'alpha', 'full_name': 'octocat/alpha', 'language': 'Go', 'stars': 4,
                'forks': 0, 'size': 1, 'default_branch': 'main', 'private': False}],
    )
    monkeypatch.setattr(sync_service, 'github', github)

    response = client.post('/github/sync-user', json={'username': 'octocat'})
    assert response.status_code == 200
    assert response.get_json()['synced_count'] == 1

    repos = client.get('/github/users/octocat/repos?sort_by=stars').get_json()
    assert [r['repo_name'] for r in repos['repositories']] == ['alpha']


def test_list_repos_rejects_bad_limit(client, make_user):
    make_user()

    response = client.get('/github/users/octocat/repos?limit=lots')

    assert response.status_code == 400


def test_suggestions_for_missing_repository(client, monkeypatch):
    llm = StubLLM('[]')
    monkeypatch.setattr(suggestion_service, 'llm', llm)

    response = client.post('/api/suggestions/generate', json={'repository_id': 4242})

    assert response.status_code == 404
    assert response.get_json()['error'] == 'NotFoundError'
    assert llm.calls == []


def test_suggestions_require_list_inputs(client, make_user, make_repo):
    repo = make_repo(make_user())

    response = client.post('/api/suggestions/generate',
                           json={'repository_id': repo.id, 'suggestion_types': 'feature'})

    assert response.status_code == 400


def test_generate_and_list_suggestions(client, monkeypatch, make_user, make_repo):
    repo = make_repo(make_user())
    monkeypatch.setattr(suggestion_service, 'llm', StubLLM('[{"title": "Add CI", "priority": "low"}]'))

    response = client.post('/api/suggestions/generate',
                           json={'repository_id': repo.id, 'suggestion_types': ['testing']})
    assert response.status_code == 200
    suggestion_id = response.get_json()['suggestions'][0]['id']

    listed = client.get(f'/api/suggestions/repository/{repo.id}?priority=low').get_json()
    assert listed['count'] == 1

    updated = client.put(f'/api/suggestions/{suggestion_id}/implemented', json={})
    assert updated.get_json()['suggestion']['is_implemented'] is True


def test_upstream_failure_maps_to_bad_gateway(client, monkeypatch):
    monkeypatch.setattr(sync_service, 'github', StubGitHub(fail_profile=True))

    response = client.post('/github/sync-user', json={'username': 'ghost'})

    assert response.status_code == 502
    assert response.get_json()['error'] == 'UpstreamError'


def test_personalities_are_seeded_and_sorted(client):
    body = client.get('/ducks/personalities').get_json()

    names = [p['name'] for p in body['personalities']]
    assert names == ['Code Quacker', 'Debug Duck', 'Rubber Duckie']


def test_seed_is_idempotent(app):
    assert personality_service.seed() == 0
    assert Personality.query.count() == len(list(DEFAULT_CATALOG)) == 3


def test_stories_for_unknown_user(client):
    response = client.get('/stories/user/nobody')

    assert response.status_code == 404
    assert response.get_json()['error'] == 'NotFoundError'


def test_generate_story_returns_created(client, monkeypatch, make_user, make_repo):
    user = make_user()
    repo = make_repo(user)
    monkeypatch.setattr(story_service, 'llm', StubLLM("A tale of ducks."))

    response = client.post('/stories/generate', json={
        'github_user_id': user.id,
        'repository_id': repo.id,
        'story_type': 'debugging',
        'duck_personality': 'Debug Duck',
    })

    assert response.status_code == 201
    story_id = response.get_json()['story']['id']

    published = client.put(f'/stories/{story_id}/publish', json={'published_url': 'https://li.example/1'})
    assert published.get_json()['story']['is_published'] is True


@pytest.mark.parametrize('payload', [{}, {'context': 'tests'}])
def test_easter_eggs_require_context_and_personality(client, payload):
    response = client.post('/ducks/easter-eggs/generate', json=payload)

    assert response.status_code == 400


def test_debug_suggestions_endpoint(client, monkeypatch):
    from duckie.services.analysis_service import analysis_service

    monkeypatch.setattr(analysis_service, 'llm',
                        StubLLM('{"issues": ["division by zero"], "suggestions": [], "fixes": ["guard"]}'))

    response = client.post('/analysis/debug-suggestions', json={'code_snippet': 'x = 1/0'})

    assert response.status_code == 200
    assert response.get_json()['debug_analysis']['issues'] == ['division by zero']


def test_get_personality_by_name(client):
    response = client.get('/ducks/personalities/Debug%20Duck')

    assert response.status_code == 200
    assert response.get_json()['personality']['catchphrases'][0] == "Another bug bites the dust!"


def test_get_unknown_personality_lists_available_names(client):
    response = client.get('/ducks/personalities/Mystery%20Goose')

    assert response.status_code == 404
    message = response.get_json()['message']
    assert 'Mystery Goose' in message
    assert 'Rubber Duckie, Code Quacker, Debug Duck' in message


def test_generate_suggestions_for_repo_by_name(client, monkeypatch, make_user, make_repo):
    make_repo(make_user(), name='alpha')
    llm = StubLLM('[{"title": "Add CI"}]')
    monkeypatch.setattr(suggestion_service, 'llm', llm)

    response = client.post('/api/suggestions/generate-for-repo',
                           json={'username': 'octocat', 'repo_name': 'alpha'})

    assert response.status_code == 200
    assert response.get_json()['max_suggestions'] == 5
    assert len(llm.calls) == 2

    missing = client.post('/api/suggestions/generate-for-repo',
                          json={'username': 'octocat', 'repo_name': 'beta'})
    assert missing.status_code == 404


def test_empty_difficulty_list_is_rejected(client, make_user, make_repo):
    repo = make_repo(make_user())

    response = client.post('/api/suggestions/generate',
                           json={'repository_id': repo.id, 'difficulty_levels': []})

    assert response.status_code == 400
