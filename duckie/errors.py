# duckie/errors.py

"""
流水线统一异常。
视图层通过 create_app 中注册的 errorhandler 把它们转换成 JSON 响应。
"""


class DuckieError(Exception):
    """所有业务异常的基类"""
    status_code = 500

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {
            'message': self.message,
            'error': self.__class__.__name__
        }


class ValidationError(DuckieError):
    """缺少必填参数或参数格式错误，不会写入任何数据"""
    status_code = 400


class NotFoundError(DuckieError):
    """引用的用户 / 仓库 / 故事 / 建议不存在"""
    status_code = 404


class ConflictError(DuckieError):
    """写入违反唯一约束（例如同一个 github_id 对应了另一个用户名）"""
    status_code = 409


class UpstreamError(DuckieError):
    """GitHub 等外部服务调用失败"""
    status_code = 502

    def __init__(self, message: str, upstream_status: int = None):
        super().__init__(message)
        # 外部服务返回的 HTTP 状态码（网络错误时为 None）
        self.upstream_status = upstream_status


class InferenceError(UpstreamError):
    """大模型接口调用失败：网络错误、未配置密钥或返回结构异常"""
