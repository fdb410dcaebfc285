# duckie/services/story_service.py

import logging
import random

from flask import current_app

from duckie.database import db
from duckie.errors import NotFoundError, ValidationError
from duckie.models import STORY_TYPES, GitHubUser, Repository, Story
from duckie.personalities import DEFAULT_CATALOG
from duckie.services.analysis_service import recent_analyses
from duckie.services.llm_service import llm_service

logger = logging.getLogger(__name__)

CONTEXT_ANALYSES = 3
PREVIEW_CHARS = 200
PREVIEW_HASHTAGS = 5

STATIC_HASHTAGS = ("#coding", "#programming", "#github", "#developer", "#rubberduck")

ENGAGEMENT_HOOKS = (
    "What's your favorite debugging technique?",
    "Have you ever had a similar coding adventure?",
    "Drop a 🦆 if you've been there too!",
)


def _language_tag(language: str) -> str:
    return (language or '').lower().replace(' ', '')


def build_hashtags(language: str, story_type: str) -> list:
    tags = list(STATIC_HASHTAGS)
    if _language_tag(language):
        tags.append(f"#{_language_tag(language)}")
    tags.append(f"#{story_type}")
    tags.append("#techstory")
    return tags


def build_easter_eggs(personality, story_type: str, language: str, rng: random.Random) -> list:
    """三个彩蛋：随机口头禅 + 两条模板文案，随机源由外部注入"""
    return [
        f"🦆 {rng.choice(personality.catchphrases)}",
        f"Rubber duck debugging level: {story_type}",
        f"Quack! Another day, another {language or 'code'} adventure",
    ]


class StoryService:
    """
    故事生成服务：结合最近的代码分析和鸭子人格，调用一次大模型生成 LinkedIn 帖子。
    模型回复原样作为正文，彩蛋 / 话题标签 / 互动问题由模板生成。
    """

    def __init__(self, llm=None, catalog=None, rng=None):
        self.llm = llm or llm_service
        self.catalog = catalog or DEFAULT_CATALOG
        self.rng = rng or random.Random()

    def generate(self, github_user_id: int, repository_id: int, story_type: str, duck_personality: str,
                 tone: str = 'professional') -> dict:
        if not all([github_user_id, repository_id, story_type, duck_personality]):
            raise ValidationError("Missing required fields")
        if story_type not in STORY_TYPES:
            raise ValidationError(f"story_type 必须是 {'/'.join(STORY_TYPES)} 之一")
        tone = tone or 'professional'

        repository = db.session.get(Repository, repository_id)
        user = db.session.get(GitHubUser, github_user_id)
        if not repository or not user:
            raise NotFoundError("Repository or user not found")

        # 1. 准备上下文
        analyses = recent_analyses(repository.id, CONTEXT_ANALYSES)
        recent_analysis = "; ".join(a.analysis_summary for a in analyses if a.analysis_summary)
        personality = self.catalog.resolve(duck_personality)

        # 2. 调用模型（失败抛 InferenceError，不落库）
        system_prompt = (
            f"You are {duck_personality}, a duck-themed coding storyteller. Create engaging LinkedIn posts "
            f"about coding journeys. Use duck puns, programming humor, and the personality traits: "
            f"{', '.join(personality.personality_traits)}. Favorite catchphrases: "
            f"{' | '.join(personality.catchphrases)}. Include relevant hashtags and engagement hooks."
        )
        user_prompt = (
            f"Create a {tone} LinkedIn story about a {story_type} experience with the "
            f"{repository.repo_name} repository ({repository.language}). "
            f"Context: {recent_analysis or 'No recent analysis'}. "
            f"Make it engaging with duck-themed elements and programming insights."
        )
        content = self.llm.complete(system_prompt, user_prompt,
                                    model=current_app.config.get('LLM_STORY_MODEL'), temperature=0.8)

        # 3. 生成辅助字段
        hashtags = build_hashtags(repository.language, story_type)
        story = Story(
            github_user_id=user.id,
            repository_id=repository.id,
            story_title=f"{duck_personality}'s {story_type} Adventure",
            story_content=content,
            duck_personality=duck_personality,
            story_type=story_type,
            easter_eggs=build_easter_eggs(personality, story_type, repository.language, self.rng),
            engagement_hooks=list(ENGAGEMENT_HOOKS),
            hashtags=hashtags,
        )
        db.session.add(story)
        db.session.commit()
        logger.info(f"[Story] 为 {user.username} 生成故事 #{story.id} ({story_type}, {duck_personality})")

        return {
            'story': story.to_dict(),
            'preview': {
                'title': story.story_title,
                'content': story.story_content[:PREVIEW_CHARS] + "...",
                'personality': duck_personality,
                'hashtags': hashtags[:PREVIEW_HASHTAGS]
            }
        }

    def list_stories(self, username: str, story_type: str = None, published_only: bool = False,
                     limit: int = 10, offset: int = 0) -> dict:
        user = GitHubUser.query.filter_by(username=username).first()
        if not user:
            raise NotFoundError("User not found")

        query = Story.query.filter_by(github_user_id=user.id)
        # 非法的 story_type 直接忽略，不作为过滤条件
        if story_type and story_type in STORY_TYPES:
            query = query.filter(Story.story_type == story_type)
        if published_only:
            query = query.filter(Story.is_published.is_(True))

        stories = query.order_by(Story.generated_at.desc(), Story.id.desc()) \
            .offset(max(offset, 0)).limit(max(limit, 0)).all()
        return {
            'user': {'username': user.username, 'id': user.id},
            'stories': [s.to_dict() for s in stories],
            'pagination': {'limit': limit, 'offset': offset, 'count': len(stories)}
        }

    def publish(self, story_id: int, published_url: str = None) -> dict:
        story = db.session.get(Story, story_id)
        if not story:
            raise NotFoundError("Story not found")

        story.is_published = True
        if published_url:
            story.published_url = published_url
        db.session.commit()
        return {
            'story': story.to_dict(),
            'published_url': published_url,
            'message': "Story marked as published"
        }

    def generate_easter_eggs(self, context: str, personality: str, code_language: str = None) -> dict:
        """独立的彩蛋生成：模板彩蛋 + 一段模型生成的双关语"""
        if not context or not personality:
            raise ValidationError("Context and personality are required")

        profile = self.catalog.resolve(personality)
        response = self.llm.complete(
            f"You are {personality}. Generate 3-5 duck-themed easter eggs and programming puns for the given "
            f"context. Be creative and use duck/water/pond metaphors with coding concepts.",
            f"Generate easter eggs for: {context} in {code_language}. "
            f"Personality traits: {', '.join(profile.personality_traits)}",
            model=current_app.config.get('LLM_ANALYSIS_MODEL'),
            temperature=0.9
        )

        easter_eggs = [
            f"🦆 {self.rng.choice(profile.catchphrases)}",
            f"Swimming through {code_language or 'code'} like a duck in water!",
            "Quack! Time to debug this pond of code",
            response
        ]
        return {
            'context': context,
            'personality': personality,
            'code_language': code_language,
            'easter_eggs': easter_eggs,
            'emojis': list(profile.emoji_set)
        }


story_service = StoryService()
