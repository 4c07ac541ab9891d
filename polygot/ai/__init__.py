"""
AI Module

This module provides the chat-completions translation service.
"""

from polygot.ai.service import AIService, build_system_prompt, validate_ai_config

__all__ = ['AIService', 'build_system_prompt', 'validate_ai_config']
