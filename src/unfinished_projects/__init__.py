"""GitHub 미완성 프로젝트 탐색 파이프라인."""

__version__ = "0.1.0"
