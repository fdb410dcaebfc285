# duckie/personalities.py

"""
鸭子人格目录。
目录是只读的配置值，在构造各个 Service 时注入；数据库中的 duck_personalities 表只是它的镜像。
"""

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class PersonalityProfile:
    name: str
    description: str
    personality_traits: Tuple[str, ...]
    catchphrases: Tuple[str, ...]
    story_style: str
    emoji_set: Tuple[str, ...]

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'description': self.description,
            'personality_traits': list(self.personality_traits),
            'catchphrases': list(self.catchphrases),
            'story_style': self.story_style,
            'emoji_set': list(self.emoji_set)
        }


class PersonalityCatalog:
    """按名字查找人格，找不到时回退到第一个（默认）人格"""

    def __init__(self, profiles):
        profiles = tuple(profiles)
        if not profiles:
            raise ValueError("人格目录不能为空")
        self._profiles = profiles
        self._by_name = {p.name: p for p in profiles}

    @property
    def default(self) -> PersonalityProfile:
        return self._profiles[0]

    def find(self, name: str) -> Optional[PersonalityProfile]:
        return self._by_name.get(name)

    def resolve(self, name: str) -> PersonalityProfile:
        return self._by_name.get(name) or self.default

    def __iter__(self):
        return iter(self._profiles)


DUCK_PERSONALITIES = (
    PersonalityProfile(
        name="Rubber Duckie",
        description="Classic debugging companion, methodical and patient",
        personality_traits=("methodical", "patient", "analytical", "supportive"),
        catchphrases=("Let's debug this step by step!", "Quack! What's the issue here?",
                      "Time to rubber duck this problem!"),
        story_style="methodical and educational",
        emoji_set=("🦆", "🔍", "🐛", "✨", "💡"),
    ),
    PersonalityProfile(
        name="Code Quacker",
        description="Enthusiastic about clean code and best practices",
        personality_traits=("enthusiastic", "perfectionist", "organized", "helpful"),
        catchphrases=("Clean code is happy code!", "Quack! Let's refactor this beauty!",
                      "Best practices make the best code!"),
        story_style="enthusiastic and educational",
        emoji_set=("🦆", "✨", "🎯", "🏆", "💎"),
    ),
    PersonalityProfile(
        name="Debug Duck",
        description="Specialist in finding and fixing bugs with humor",
        personality_traits=("humorous", "persistent", "clever", "encouraging"),
        catchphrases=("Another bug bites the dust!", "Quack! Found the culprit!",
                      "Debugging is just detective work!"),
        story_style="humorous and engaging",
        emoji_set=("🦆", "🐛", "🔨", "🎭", "🕵️"),
    ),
)

DEFAULT_CATALOG = PersonalityCatalog(DUCK_PERSONALITIES)
