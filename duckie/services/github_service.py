# duckie/services/github_service.py

import logging

import requests
from flask import current_app

from duckie.errors import UpstreamError

logger = logging.getLogger(__name__)

# GitHub API 的基础 URL（未在配置中指定时使用）
GITHUB_API_BASE = "https://api.github.com"


class GitHubService:
    """
    GitHub 数据获取服务。
    所有方法在失败时抛出 UpstreamError，由调用方决定是中止整个流程还是跳过单个条目。
    """

    # 🟢 核心辅助方法：统一生成带 Token 的请求头
    def _get_headers(self):
        headers = {
            'Accept': 'application/vnd.github.v3+json',
        }
        token = current_app.config.get('GITHUB_TOKEN')
        if token:
            headers['Authorization'] = f'token {token}'
        return headers

    def _api_base(self) -> str:
        return (current_app.config.get('GITHUB_API_BASE') or GITHUB_API_BASE).rstrip('/')

    def _timeout(self) -> int:
        return current_app.config.get('GITHUB_TIMEOUT', 10)

    def _get_json(self, url: str, params: dict = None):
        try:
            response = requests.get(url, headers=self._get_headers(), params=params, timeout=self._timeout())
        except requests.RequestException as e:
            logger.error(f"[GitHub] 请求失败 {url}: {e}")
            raise UpstreamError(f"GitHub 请求失败: {e}")

        if response.status_code == 404:
            raise UpstreamError(f"GitHub 资源不存在: {url}", upstream_status=404)
        if response.status_code >= 400:
            logger.error(f"[GitHub] {url} 返回 {response.status_code}: {response.text[:200]}")
            raise UpstreamError(f"GitHub 返回错误状态 {response.status_code}",
                                upstream_status=response.status_code)

        try:
            return response.json()
        except ValueError:
            raise UpstreamError(f"GitHub 返回了无法解析的数据: {url}")

    def fetch_user_profile(self, username: str) -> dict:
        """
        获取 GitHub 用户的基本个人资料（头像、Bio、粉丝数等）
        """
        data = self._get_json(f"{self._api_base()}/users/{username}")
        return {
            'username': data.get('login'),
            'github_id': data.get('id'),
            'avatar_url': data.get('avatar_url'),
            'bio': data.get('bio'),
            'location': data.get('location'),
            'company': data.get('company'),
            'blog': data.get('blog'),
            'public_repos': data.get('public_repos'),
            'followers': data.get('followers'),
            'following': data.get('following'),
        }

    def fetch_repos_page(self, username: str, page: int = 1, per_page: int = 100,
                         include_private: bool = False) -> list:
        """
        获取用户仓库列表的一页。
        include_private 为 False 时只保留公开仓库。
        """
        params = {
            'type': 'all' if include_private else 'owner',
            'sort': 'updated',
            'direction': 'desc',
            'per_page': per_page,
            'page': page
        }
        repo_list = self._get_json(f"{self._api_base()}/users/{username}/repos", params=params)
        if not isinstance(repo_list, list):
            raise UpstreamError("GitHub 仓库列表格式异常")

        formatted_data = []
        for repo in repo_list:
            formatted_data.append({
                'name': repo.get('name'),
                'full_name': repo.get('full_name'),
                'description': repo.get('description'),
                'language': repo.get('language'),
                'stars': repo.get('stargazers_count') or 0,
                'forks': repo.get('forks_count') or 0,
                'size': repo.get('size') or 0,
                'default_branch': repo.get('default_branch') or 'main',
                'private': bool(repo.get('private')),
            })
        return formatted_data

    def fetch_directory(self, owner: str, repo_name: str, path: str = '', ref: str = 'main') -> list:
        """
        获取仓库目录内容，顺序与 GitHub 返回的一致。
        如果 path 指向单个文件，GitHub 返回对象而不是数组，这里统一包装成列表。
        """
        url = f"{self._api_base()}/repos/{owner}/{repo_name}/contents/{path}"
        contents = self._get_json(url, params={'ref': ref})
        if isinstance(contents, dict):
            contents = [contents]

        entries = []
        for item in contents:
            entries.append({
                'name': item.get('name'),
                'path': item.get('path'),
                'type': item.get('type'),
                'size': item.get('size'),
                'download_url': item.get('download_url'),
            })
        return entries

    def fetch_file_content(self, download_url: str) -> str:
        """
        下载文件原始内容（完整内容，截断由调用方负责）
        """
        try:
            response = requests.get(download_url, headers=self._get_headers(), timeout=self._timeout())
            response.raise_for_status()
        except requests.RequestException as e:
            raise UpstreamError(f"下载文件失败 {download_url}: {e}")
        return response.text


# 实例化服务，供其他模块调用
github_service = GitHubService()
