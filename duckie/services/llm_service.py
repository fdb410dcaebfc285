# duckie/services/llm_service.py

import logging

import requests
from flask import current_app

from duckie.errors import InferenceError

logger = logging.getLogger(__name__)


class LLMService:
    """
    大模型调用服务：封装 OpenAI 兼容的 /chat/completions 接口，只返回纯文本。
    结构化解析由 llm_parsing 负责，这里不做任何 JSON 处理。
    """

    def _settings(self):
        cfg = current_app.config
        return {
            'api_key': cfg.get('LLM_API_KEY'),
            'base_url': (cfg.get('LLM_BASE_URL') or '').rstrip('/'),
            'timeout': cfg.get('LLM_TIMEOUT', 60),
        }

    def chat(self, messages: list, model: str = None, temperature: float = 0.4,
             max_tokens: int = None) -> str:
        """
        发送对话请求并返回模型的文本回复。
        任何网络错误、非 200 响应或返回结构异常都会抛出 InferenceError。
        """
        settings = self._settings()
        if not settings['api_key']:
            raise InferenceError("后端未配置 LLM_API_KEY")

        model = model or current_app.config.get('LLM_ANALYSIS_MODEL')
        headers = {
            "Authorization": f"Bearer {settings['api_key']}",
            "Content-Type": "application/json"
        }
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens:
            payload["max_tokens"] = max_tokens

        try:
            logger.info(f"[AI] 请求模型 {model}，消息数 {len(messages)}")
            response = requests.post(
                f"{settings['base_url']}/chat/completions",
                headers=headers,
                json=payload,
                timeout=settings['timeout']
            )
        except requests.exceptions.Timeout:
            logger.error("[AI] 请求超时")
            raise InferenceError("AI 响应超时")
        except requests.exceptions.RequestException as e:
            logger.error(f"[AI] 网络请求失败: {e}")
            raise InferenceError(f"网络错误: {e}")

        if response.status_code != 200:
            logger.error(f"[AI] 接口返回 {response.status_code}: {response.text[:200]}")
            raise InferenceError(f"AI 服务异常: HTTP {response.status_code}",
                                 upstream_status=response.status_code)

        try:
            content = response.json()['choices'][0]['message']['content']
        except (ValueError, KeyError, IndexError, TypeError):
            logger.error("[AI] API 返回格式错误")
            raise InferenceError("API 返回格式异常")

        # 原样返回模型文本
        return content or ''

    def complete(self, system_prompt: str, user_prompt: str, model: str = None,
                 temperature: float = 0.4, max_tokens: int = None) -> str:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_prompt})
        return self.chat(messages, model=model, temperature=temperature, max_tokens=max_tokens)


llm_service = LLMService()
