# duckie/services/personality_service.py

import logging

from duckie.database import db
from duckie.errors import NotFoundError
from duckie.models import Asset, Personality
from duckie.personalities import DEFAULT_CATALOG

logger = logging.getLogger(__name__)


class PersonalityService:

    def __init__(self, catalog=None):
        self.catalog = catalog or DEFAULT_CATALOG

    def seed(self) -> int:
        """
        把人格目录写入数据库：按 name 逐个"不存在才插入"，可以重复调用。
        返回本次新插入的数量。
        """
        existing = {name for (name,) in db.session.query(Personality.name).all()}
        created = 0
        for profile in self.catalog:
            if profile.name in existing:
                continue
            db.session.add(Personality(**profile.to_dict()))
            created += 1

        if created:
            db.session.commit()
            logger.info(f"[Personality] 写入 {created} 个鸭子人格")
        return created

    def list_personalities(self, include_assets: bool = False) -> dict:
        personalities = Personality.query.order_by(Personality.name).all()

        result = []
        for personality in personalities:
            item = personality.to_dict()
            if include_assets:
                assets = Asset.query.filter_by(personality_id=personality.id).order_by(Asset.id).all()
                item['assets'] = [asset.to_dict() for asset in assets]
            result.append(item)
        return {'personalities': result}

    def get_personality(self, name: str) -> dict:
        """按名字查找人格目录中的单个人格；找不到时在错误信息里列出可用的名字"""
        profile = self.catalog.find(name)
        if profile is None:
            available = ', '.join(p.name for p in self.catalog)
            raise NotFoundError(f'Duck personality "{name}" not found. Available personalities: {available}')
        return {'personality': profile.to_dict()}


personality_service = PersonalityService()
