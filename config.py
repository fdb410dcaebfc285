import os
from dotenv import load_dotenv

# 加载 .env 文件中的环境变量
load_dotenv()


class Config:
    """基础配置类"""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'A_REALLY_BAD_SECRET_KEY'

    # --- 数据库配置 (MySQL) ---
    MYSQL_USER = os.environ.get('MYSQL_USER') or 'root'
    MYSQL_PASSWORD = os.environ.get('MYSQL_PASSWORD') or 'root'
    MYSQL_HOST = os.environ.get('MYSQL_HOST') or 'localhost'
    MYSQL_PORT = os.environ.get('MYSQL_PORT') or '3306'
    MYSQL_DB = os.environ.get('MYSQL_DB') or 'duckie_storyteller'

    # SQLAlchemy 配置，DATABASE_URL 优先（方便切换到 SQLite 本地调试）
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or (
        f"mysql+pymysql://{MYSQL_USER}:{MYSQL_PASSWORD}@{MYSQL_HOST}:{MYSQL_PORT}/{MYSQL_DB}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # 启动时自动建表并写入鸭子人格目录（幂等）
    AUTO_INIT_DB = os.environ.get('AUTO_INIT_DB', 'true').lower() == 'true'
    LOG_LEVEL = os.environ.get('LOG_LEVEL') or 'INFO'

    # ------------------- GitHub 配置 -------------------
    # 如果留空，每小时只能请求 60 次；填入后可请求 5000 次。
    GITHUB_TOKEN = os.environ.get('GITHUB_TOKEN')
    GITHUB_API_BASE = os.environ.get('GITHUB_API_BASE') or 'https://api.github.com'
    GITHUB_TIMEOUT = int(os.environ.get('GITHUB_TIMEOUT') or 10)

    # 同步仓库时每页数量（GitHub 上限 100）以及单次同步的仓库总数上限
    SYNC_PAGE_SIZE = int(os.environ.get('SYNC_PAGE_SIZE') or 100)
    SYNC_MAX_REPOS = int(os.environ.get('SYNC_MAX_REPOS') or 300)

    # ------------------- 大模型配置 (OpenAI 兼容接口) -------------------
    LLM_API_KEY = os.environ.get('LLM_API_KEY') or os.environ.get('MOONSHOT_API_KEY')
    LLM_BASE_URL = os.environ.get('LLM_BASE_URL') or os.environ.get('MOONSHOT_BASE_URL') or 'https://api.moonshot.cn/v1'
    LLM_ANALYSIS_MODEL = os.environ.get('LLM_ANALYSIS_MODEL') or 'moonshot-v1-8k'
    LLM_STORY_MODEL = os.environ.get('LLM_STORY_MODEL') or 'moonshot-v1-32k'
    LLM_TIMEOUT = int(os.environ.get('LLM_TIMEOUT') or 60)

    # ------------------- 分析流水线 -------------------
    # 每次分析最多处理的目录条目数，以及送给模型的代码字符数
    ANALYSIS_MAX_FILES = int(os.environ.get('ANALYSIS_MAX_FILES') or 10)
    ANALYSIS_PROMPT_CHARS = int(os.environ.get('ANALYSIS_PROMPT_CHARS') or 2000)


class DevelopmentConfig(Config):
    """开发环境配置"""
    DEBUG = True


class ProductionConfig(Config):
    """生产环境配置"""
    DEBUG = False


class TestingConfig(Config):
    """测试环境配置：内存 SQLite，不访问任何外部服务"""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    AUTO_INIT_DB = True
    GITHUB_TOKEN = None
    LLM_API_KEY = 'test-key'


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
