# duckie/services/sync_service.py

import logging

from flask import current_app
from sqlalchemy.exc import IntegrityError  # 用于处理数据库唯一性约束错误

from duckie.database import db, utcnow
from duckie.errors import ConflictError, NotFoundError, UpstreamError, ValidationError
from duckie.models import GitHubUser, Repository
from duckie.services.github_service import github_service

logger = logging.getLogger(__name__)

# 每次同步都会刷新的字段；username / github_id / created_at 永远不动
USER_PROFILE_FIELDS = ('avatar_url', 'bio', 'location', 'company', 'blog',
                       'public_repos', 'followers', 'following')
USER_COUNT_FIELDS = ('public_repos', 'followers', 'following')
REPO_METRIC_FIELDS = ('description', 'language', 'stars', 'forks', 'size', 'default_branch')
REPO_COUNT_FIELDS = ('stars', 'forks', 'size')

# GitHub 单页上限
GITHUB_MAX_PAGE_SIZE = 100


def _non_negative(value) -> int:
    try:
        return max(int(value or 0), 0)
    except (TypeError, ValueError):
        return 0


class SyncService:
    """
    同步服务：把 GitHub 上的用户与仓库按自然键 upsert 到本地数据库。
    重复调用只会刷新可变字段和 updated_at，不会产生新行。
    """

    def __init__(self, github=None):
        self.github = github or github_service

    def sync_user(self, username: str, include_private: bool = False) -> dict:
        username = (username or '').strip()
        if not username:
            raise ValidationError("缺少 GitHub 用户名")

        # 1. 获取用户资料（失败直接抛 UpstreamError，此时什么都没写）
        profile = self.github.fetch_user_profile(username)
        if not profile or profile.get('github_id') is None:
            raise UpstreamError(f"GitHub 没有返回用户 {username} 的有效资料")

        # 2. upsert 用户并立即提交
        user = self._upsert_user(profile, fallback_username=username)
        self._commit(f"用户 {user.username}")

        # 3. 分页同步仓库，每页提交一次；后续页失败时，之前的页保持已提交
        page_size = current_app.config.get('SYNC_PAGE_SIZE', GITHUB_MAX_PAGE_SIZE)
        page_size = min(max(page_size, 1), GITHUB_MAX_PAGE_SIZE)
        max_repos = current_app.config.get('SYNC_MAX_REPOS', 300)

        synced = []
        page = 1
        while len(synced) < max_repos:
            batch = self.github.fetch_repos_page(user.username, page=page, per_page=page_size,
                                                 include_private=include_private)
            for repo_data in batch:
                if len(synced) >= max_repos:
                    break
                if repo_data.get('private') and not include_private:
                    continue
                synced.append(self._upsert_repository(user, repo_data))
            self._commit(f"{user.username} 的第 {page} 页仓库")

            if len(batch) < page_size:
                break
            page += 1

        logger.info(f"[Sync] 用户 {user.username} 同步完成，共 {len(synced)} 个仓库")
        return {
            'user': user.to_dict(),
            'repositories': [repo.to_dict() for repo in synced],
            'synced_count': len(synced)
        }

    def _upsert_user(self, profile: dict, fallback_username: str) -> GitHubUser:
        username = profile.get('username') or fallback_username
        now = utcnow()

        user = GitHubUser.query.filter_by(username=username).first()
        if user is None:
            user = GitHubUser(username=username, github_id=profile['github_id'], created_at=now)
            db.session.add(user)
            logger.info(f"[Sync] 新建用户 {username}")

        for field in USER_PROFILE_FIELDS:
            value = profile.get(field)
            if field in USER_COUNT_FIELDS:
                value = _non_negative(value)
            setattr(user, field, value)
        user.updated_at = now
        return user

    def _upsert_repository(self, user: GitHubUser, data: dict) -> Repository:
        full_name = data.get('full_name') or f"{user.username}/{data.get('name')}"
        now = utcnow()

        repo = Repository.query.filter_by(full_name=full_name).first()
        if repo is None:
            repo = Repository(
                github_user_id=user.id,
                repo_name=data.get('name') or full_name.split('/')[-1],
                full_name=full_name,
                is_private=bool(data.get('private')),
                created_at=now
            )
            db.session.add(repo)

        for field in REPO_METRIC_FIELDS:
            value = data.get(field)
            if field in REPO_COUNT_FIELDS:
                value = _non_negative(value)
            setattr(repo, field, value)
        if not repo.default_branch:
            repo.default_branch = 'main'
        repo.updated_at = now
        return repo

    def _commit(self, what: str):
        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            logger.error(f"[Sync] 保存{what}时违反唯一约束: {e}")
            raise ConflictError(f"保存{what}时发生数据冲突")

    def list_repositories(self, username: str, language: str = None, sort_by: str = 'updated_at',
                          limit: int = 20, offset: int = 0) -> dict:
        """查询已同步的仓库，支持按语言过滤、按 stars 或更新时间排序"""
        user = GitHubUser.query.filter_by(username=username).first()
        if not user:
            raise NotFoundError(f"用户 {username} 尚未同步")

        query = Repository.query.filter_by(github_user_id=user.id)
        if language:
            query = query.filter(Repository.language == language)

        if sort_by == 'stars':
            query = query.order_by(Repository.stars.desc(), Repository.id.desc())
        else:
            query = query.order_by(Repository.updated_at.desc(), Repository.id.desc())

        repositories = query.offset(max(offset, 0)).limit(max(limit, 0)).all()
        return {
            'user': {'username': user.username, 'id': user.id},
            'repositories': [repo.to_dict() for repo in repositories],
            'pagination': {'limit': limit, 'offset': offset, 'count': len(repositories)}
        }


sync_service = SyncService()
