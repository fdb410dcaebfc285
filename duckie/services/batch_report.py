# duckie/services/batch_report.py

from dataclasses import dataclass, field
from typing import List

SUCCESS = 'success'
FALLBACK = 'fallback'
SKIPPED = 'skipped'


@dataclass
class ItemResult:
    """批处理中单个条目（一个文件 / 一个建议类别）的处理结果"""
    key: str
    status: str
    detail: str = ''
    records: int = 0

    def to_dict(self):
        return {
            'key': self.key,
            'status': self.status,
            'detail': self.detail,
            'records': self.records
        }


@dataclass
class BatchReport:
    """
    汇总一次批处理的逐条结果，让调用方看到"请求了多少、成功了多少"，
    而不是在循环里吞掉错误后笼统地返回成功。
    """
    requested: int = 0
    items: List[ItemResult] = field(default_factory=list)
    cancelled: bool = False

    def record(self, key: str, status: str, detail: str = '', records: int = 0) -> ItemResult:
        item = ItemResult(key=key, status=status, detail=detail, records=records)
        self.items.append(item)
        return item

    def count(self, status: str) -> int:
        return sum(1 for item in self.items if item.status == status)

    @property
    def succeeded(self) -> int:
        return self.count(SUCCESS)

    @property
    def fallbacks(self) -> int:
        return self.count(FALLBACK)

    @property
    def skipped(self) -> int:
        return self.count(SKIPPED)

    @property
    def attempted(self) -> int:
        return len(self.items)

    def to_dict(self):
        return {
            'requested': self.requested,
            'attempted': self.attempted,
            'succeeded': self.succeeded,
            'fallbacks': self.fallbacks,
            'skipped': self.skipped,
            'cancelled': self.cancelled,
            'items': [item.to_dict() for item in self.items]
        }
