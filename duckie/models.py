import json

from sqlalchemy.types import Text, TypeDecorator

from .database import db, utcnow

# -------------------
# 枚举取值
# -------------------
SUGGESTION_TYPES = ('bug_fix', 'feature', 'improvement', 'refactor', 'documentation', 'testing')
PRIORITIES = ('low', 'medium', 'high', 'critical')
DIFFICULTIES = ('beginner', 'intermediate', 'advanced')
STORY_TYPES = ('debugging', 'feature', 'refactor', 'learning')
ASSET_TYPES = ('image', 'gif', 'emoji')


def _iso(value):
    return value.isoformat() if value else None


class StringList(TypeDecorator):
    """
    字符串列表列：Python 侧始终是 list[str]，数据库侧存 JSON 文本。
    所有列表字段（patterns、tags、hashtags...）都经过这里序列化。
    """
    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return json.dumps([str(item) for item in value], ensure_ascii=False)

    def process_result_value(self, value, dialect):
        if not value:
            return []
        try:
            loaded = json.loads(value)
        except json.JSONDecodeError:
            return []
        if not isinstance(loaded, list):
            return []
        return [str(item) for item in loaded]


class GitHubUser(db.Model):
    """GitHub 用户：username 与 github_id 创建后不再修改"""
    __tablename__ = 'github_users'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, index=True, nullable=False)
    github_id = db.Column(db.Integer, unique=True, index=True, nullable=False)

    avatar_url = db.Column(db.String(512))
    bio = db.Column(db.Text)
    location = db.Column(db.String(256))
    company = db.Column(db.String(256))
    blog = db.Column(db.String(512))
    public_repos = db.Column(db.Integer, default=0)
    followers = db.Column(db.Integer, default=0)
    following = db.Column(db.Integer, default=0)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    repositories = db.relationship('Repository', backref='owner', lazy='dynamic')
    stories = db.relationship('Story', backref='user', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'github_id': self.github_id,
            'avatar_url': self.avatar_url,
            'bio': self.bio,
            'location': self.location,
            'company': self.company,
            'blog': self.blog,
            'public_repos': self.public_repos,
            'followers': self.followers,
            'following': self.following,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }


class Repository(db.Model):
    """仓库：full_name (owner/name) 是自然键"""
    __tablename__ = 'repositories'
    id = db.Column(db.Integer, primary_key=True)
    github_user_id = db.Column(db.Integer, db.ForeignKey('github_users.id'), index=True, nullable=False)
    repo_name = db.Column(db.String(256), nullable=False)
    full_name = db.Column(db.String(512), unique=True, index=True, nullable=False)

    description = db.Column(db.Text)
    language = db.Column(db.String(64), index=True)
    stars = db.Column(db.Integer, default=0)
    forks = db.Column(db.Integer, default=0)
    size = db.Column(db.Integer, default=0)
    default_branch = db.Column(db.String(128), default='main')
    is_private = db.Column(db.Boolean, default=False)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    # 只由分析流水线写入
    last_analyzed = db.Column(db.DateTime)

    analyses = db.relationship('CodeAnalysis', backref='repository', lazy='dynamic')
    suggestions = db.relationship('Suggestion', backref='repository', lazy='dynamic')
    stories = db.relationship('Story', backref='repository', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'github_user_id': self.github_user_id,
            'repo_name': self.repo_name,
            'full_name': self.full_name,
            'description': self.description,
            'language': self.language,
            'stars': self.stars,
            'forks': self.forks,
            'size': self.size,
            'default_branch': self.default_branch,
            'is_private': self.is_private,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
            'last_analyzed': _iso(self.last_analyzed)
        }


class CodeAnalysis(db.Model):
    """单个文件的一次 AI 分析结果，只追加不更新"""
    __tablename__ = 'code_analysis'
    id = db.Column(db.Integer, primary_key=True)
    repository_id = db.Column(db.Integer, db.ForeignKey('repositories.id'), index=True, nullable=False)

    file_path = db.Column(db.String(1024), nullable=False)
    language = db.Column(db.String(64), index=True)
    lines_of_code = db.Column(db.Integer, default=0)
    complexity_score = db.Column(db.Float, default=0)
    patterns_detected = db.Column(StringList, default=list)
    bugs_found = db.Column(StringList, default=list)
    improvements_suggested = db.Column(StringList, default=list)
    analysis_summary = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'repository_id': self.repository_id,
            'file_path': self.file_path,
            'language': self.language,
            'lines_of_code': self.lines_of_code,
            'complexity_score': self.complexity_score,
            'patterns_detected': self.patterns_detected or [],
            'bugs_found': self.bugs_found or [],
            'improvements_suggested': self.improvements_suggested or [],
            'analysis_summary': self.analysis_summary,
            'created_at': _iso(self.created_at)
        }


class Suggestion(db.Model):
    """AI 生成的 issue 建议，每次生成都追加新行"""
    __tablename__ = 'issue_suggestions'
    id = db.Column(db.Integer, primary_key=True)
    repository_id = db.Column(db.Integer, db.ForeignKey('repositories.id'), index=True, nullable=False)

    suggestion_type = db.Column(db.Enum(*SUGGESTION_TYPES, name='suggestion_type'), nullable=False)
    title = db.Column(db.String(512), nullable=False)
    description = db.Column(db.Text, nullable=False)
    priority = db.Column(db.Enum(*PRIORITIES, name='suggestion_priority'), nullable=False)
    difficulty = db.Column(db.Enum(*DIFFICULTIES, name='suggestion_difficulty'), nullable=False)
    estimated_hours = db.Column(db.Integer, default=4)
    tags = db.Column(StringList, default=list)
    ai_reasoning = db.Column(db.Text)
    duck_wisdom = db.Column(db.Text)

    # 以下字段只由外部操作修改（真正创建 issue / 标记已实现）
    github_issue_url = db.Column(db.String(512))
    is_implemented = db.Column(db.Boolean, default=False, index=True)

    generated_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime)

    def to_dict(self):
        return {
            'id': self.id,
            'repository_id': self.repository_id,
            'suggestion_type': self.suggestion_type,
            'title': self.title,
            'description': self.description,
            'priority': self.priority,
            'difficulty': self.difficulty,
            'estimated_hours': self.estimated_hours,
            'tags': self.tags or [],
            'ai_reasoning': self.ai_reasoning,
            'duck_wisdom': self.duck_wisdom,
            'github_issue_url': self.github_issue_url,
            'is_implemented': bool(self.is_implemented),
            'generated_at': _iso(self.generated_at),
            'updated_at': _iso(self.updated_at)
        }


class Story(db.Model):
    """LinkedIn 风格的故事帖子"""
    __tablename__ = 'linkedin_stories'
    id = db.Column(db.Integer, primary_key=True)
    github_user_id = db.Column(db.Integer, db.ForeignKey('github_users.id'), index=True, nullable=False)
    repository_id = db.Column(db.Integer, db.ForeignKey('repositories.id'), index=True, nullable=False)

    story_title = db.Column(db.String(512), nullable=False)
    story_content = db.Column(db.Text, nullable=False)
    duck_personality = db.Column(db.String(128), nullable=False)
    story_type = db.Column(db.Enum(*STORY_TYPES, name='story_type'), index=True, nullable=False)
    easter_eggs = db.Column(StringList, default=list)
    engagement_hooks = db.Column(StringList, default=list)
    hashtags = db.Column(StringList, default=list)

    # 发布状态只由 publish 操作修改
    is_published = db.Column(db.Boolean, default=False, index=True)
    published_url = db.Column(db.String(512))

    generated_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'github_user_id': self.github_user_id,
            'repository_id': self.repository_id,
            'story_title': self.story_title,
            'story_content': self.story_content,
            'duck_personality': self.duck_personality,
            'story_type': self.story_type,
            'easter_eggs': self.easter_eggs or [],
            'engagement_hooks': self.engagement_hooks or [],
            'hashtags': self.hashtags or [],
            'is_published': bool(self.is_published),
            'published_url': self.published_url,
            'generated_at': _iso(self.generated_at)
        }


class Personality(db.Model):
    """鸭子人格，启动时从 PersonalityCatalog 写入，流水线只读"""
    __tablename__ = 'duck_personalities'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), unique=True, index=True, nullable=False)
    description = db.Column(db.Text)
    personality_traits = db.Column(StringList, default=list)
    catchphrases = db.Column(StringList, default=list)
    story_style = db.Column(db.String(256))
    emoji_set = db.Column(StringList, default=list)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    assets = db.relationship('Asset', backref='personality', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'personality_traits': self.personality_traits or [],
            'catchphrases': self.catchphrases or [],
            'story_style': self.story_style,
            'emoji_set': self.emoji_set or [],
            'created_at': _iso(self.created_at)
        }


class Asset(db.Model):
    """静态素材目录（二进制文件存放在对象存储，这里只记录 key）"""
    __tablename__ = 'duck_assets'
    id = db.Column(db.Integer, primary_key=True)
    asset_name = db.Column(db.String(256), nullable=False)
    asset_type = db.Column(db.Enum(*ASSET_TYPES, name='asset_type'), index=True, nullable=False)
    storage_key = db.Column(db.String(512), nullable=False)
    personality_id = db.Column(db.Integer, db.ForeignKey('duck_personalities.id'), index=True)
    tags = db.Column(StringList, default=list)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'asset_name': self.asset_name,
            'asset_type': self.asset_type,
            'storage_key': self.storage_key,
            'personality_id': self.personality_id,
            'tags': self.tags or [],
            'created_at': _iso(self.created_at)
        }
