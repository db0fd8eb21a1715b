"""프로젝트 분석 모듈."""

from unfinished_projects.analyzers.gemini import GeminiAnalyzer, fallback_analysis
from unfinished_projects.analyzers.simple import SimpleAnalyzer

__all__ = ["GeminiAnalyzer", "SimpleAnalyzer", "fallback_analysis"]
