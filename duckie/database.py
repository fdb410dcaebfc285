from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

# 初始化 SQLAlchemy 实例，实际的连接和配置在 duckie/__init__.py 中完成
db = SQLAlchemy()


def utcnow() -> datetime:
    """统一的时间戳来源：UTC 时间，去掉 tzinfo 以便 MySQL / SQLite 的 DateTime 列直接存储"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
