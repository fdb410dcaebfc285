"""Stub adapters standing in for GitHubService and LLMService."""
from duckie.errors import UpstreamError


class StubGitHub:
    """In-memory stand-in for GitHubService."""

    def __init__(self, profile=None, repos=None, directory=None, files=None,
                 failing_urls=(), fail_profile=False, fail_on_page=None):
        self.profile = profile or {}
        self.repos = repos or []
        self.directory = directory or []
        self.files = files or {}
        self.failing_urls = set(failing_urls)
        self.fail_profile = fail_profile
        self.fail_on_page = fail_on_page
        self.page_calls = []
        self.downloaded = []

    def fetch_user_profile(self, username):
        if self.fail_profile:
            raise UpstreamError(f"GitHub 资源不存在: {username}", upstream_status=404)
        return dict(self.profile)

    def fetch_repos_page(self, username, page=1, per_page=100, include_private=False):
        self.page_calls.append((username, page, per_page, include_private))
        if self.fail_on_page == page:
            raise UpstreamError("GitHub 返回错误状态 500", upstream_status=500)
        start = (page - 1) * per_page
        return [dict(r) for r in self.repos[start:start + per_page]]

    def fetch_directory(self, owner, repo_name, path='', ref='main'):
        return [dict(entry) for entry in self.directory]

    def fetch_file_content(self, download_url):
        self.downloaded.append(download_url)
        if download_url in self.failing_urls:
            raise UpstreamError(f"下载文件失败 {download_url}")
        return self.files.get(download_url, "print('hello')\n")


class StubLLM:
    """
    responder can be a string (always returned), a list (returned in order),
    or a callable(system_prompt, user_prompt). Exception instances are raised.
    """

    def __init__(self, responder=''):
        self.responder = responder
        self.calls = []

    def complete(self, system_prompt, user_prompt, model=None, temperature=0.4, max_tokens=None):
        self.calls.append({'system': system_prompt, 'user': user_prompt, 'model': model})
        if callable(self.responder):
            result = self.responder(system_prompt, user_prompt)
        elif isinstance(self.responder, list):
            result = self.responder.pop(0)
        else:
            result = self.responder
        if isinstance(result, Exception):
            raise result
        return result
