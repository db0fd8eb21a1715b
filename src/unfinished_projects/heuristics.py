"""점수 계산과 분석기가 공유하는 휴리스틱 함수."""

import re
from datetime import UTC, datetime

# 30일 = 1개월
_SECONDS_PER_MONTH = 60 * 60 * 24 * 30

SOURCE_DIRS = {"src", "lib", "app", "components"}
MANIFEST_FILES = {"package.json", "requirements.txt", "Cargo.toml", "pom.xml", "go.mod"}
CODE_EXTENSIONS = (
    ".js",
    ".ts",
    ".jsx",
    ".tsx",
    ".py",
    ".java",
    ".go",
    ".rs",
    ".cpp",
    ".c",
    ".php",
)

CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "web-development": ["web", "website", "frontend", "react", "vue", "angular"],
    "mobile-app": ["mobile", "android", "ios", "flutter", "react-native"],
    "cli-tool": ["cli", "command", "terminal", "tool"],
    "api": ["api", "rest", "graphql", "server"],
    "game": ["game", "gaming", "unity", "godot"],
    "data-science": ["data", "analysis", "pandas", "numpy"],
    "machine-learning": ["ml", "ai", "tensorflow", "pytorch"],
    "devtools": ["dev", "development", "build", "deploy"],
    "library": ["library", "package", "module", "framework"],
}

ALLOWED_CATEGORIES = [*CATEGORY_KEYWORDS, "prototype"]

DEFAULT_CATEGORY = "prototype"

_TODO_MARKERS = re.compile(r"TODO|FIXME|HACK|BUG|INCOMPLETE", re.IGNORECASE)

_LANGUAGE_TODOS: dict[str, list[str]] = {
    "JavaScript": [
        "테스트 코드 작성 (Jest/Mocha)",
        "ESLint 설정 및 코드 품질 개선",
        "번들링 최적화 (Webpack/Vite)",
        "타입스크립트 마이그레이션 고려",
    ],
    "TypeScript": ["타입 정의 완성", "테스트 코드 작성", "빌드 설정 최적화", "API 문서 자동 생성"],
    "Python": [
        "requirements.txt 정리",
        "단위 테스트 작성 (pytest)",
        "코드 포맷팅 (black, flake8)",
        "패키지 배포 준비",
    ],
    "Java": ["Maven/Gradle 설정 완성", "JUnit 테스트 작성", "JavaDoc 문서화", "CI/CD 파이프라인 구축"],
    "Go": ["go mod 의존성 정리", "테스트 커버리지 향상", "벤치마크 테스트 추가", "Docker 컨테이너화"],
    "Rust": ["Cargo.toml 최적화", "단위 테스트 완성", "문서 테스트 추가", "성능 최적화"],
}

_GENERIC_TODOS = ["코드 리팩토링", "테스트 코드 작성", "문서화 개선", "에러 핸들링 강화"]


def months_since(timestamp: datetime, now: datetime | None = None) -> float:
    """주어진 시각 이후 지난 개월 수 (30일 기준)."""
    now = now or datetime.now(UTC)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    return (now - timestamp).total_seconds() / _SECONDS_PER_MONTH


def star_points(stars: int) -> int:
    """스타 수 점수: 10개 이상 2점, 3개 이상 1점."""
    if stars >= 10:
        return 2
    if stars >= 3:
        return 1
    return 0


def recency_points(months: float, *, full_within: float, partial_within: float) -> int:
    """최근 활동 점수: ``full_within``개월 이내 2점, ``partial_within``개월 이내 1점."""
    if months <= full_within:
        return 2
    if months <= partial_within:
        return 1
    return 0


def readme_length_tier(length: int) -> int:
    """README 길이 단계: 500자 초과 2, 200자 초과 1, 그 외 0."""
    if length > 500:
        return 2
    if length > 200:
        return 1
    return 0


def readme_sections(readme: str) -> dict[str, bool]:
    """README에 설치/사용법/기능 설명이 있는지 확인한다."""
    lowered = readme.lower()
    return {
        "installation": "install" in lowered or "설치" in lowered,
        "usage": "usage" in lowered or "사용법" in lowered or "example" in lowered,
        "features": "feature" in lowered or "기능" in lowered,
    }


def count_todo_markers(text: str) -> int:
    """TODO/FIXME/HACK/BUG/INCOMPLETE 키워드 수."""
    return len(_TODO_MARKERS.findall(text))


def infer_categories(
    description: str | None,
    readme: str,
    topics: list[str],
    language: str | None,
    limit: int = 3,
) -> list[str]:
    """설명, README, 토픽에서 키워드를 찾아 카테고리를 추론한다."""
    categories: list[str] = []
    description_lower = (description or "").lower()
    readme_lower = readme.lower()

    if language in ("JavaScript", "TypeScript"):
        if "react" in readme_lower or "react" in topics:
            categories.append("web-development")
        elif "node" in readme_lower or "nodejs" in topics:
            categories.append("backend")

    for category, keywords in CATEGORY_KEYWORDS.items():
        if category in categories:
            continue
        if any(
            keyword in description_lower or keyword in readme_lower or keyword in topics
            for keyword in keywords
        ):
            categories.append(category)

    if not categories:
        categories.append(DEFAULT_CATEGORY)

    return categories[:limit]


def language_todos(language: str | None) -> list[str]:
    """언어별 기본 TODO 목록."""
    return list(_LANGUAGE_TODOS.get(language or "", _GENERIC_TODOS))


def fallback_summary(language: str | None, description: str | None) -> str:
    """AI 요약이 없을 때 쓰는 한 줄 요약."""
    language = language or "Unknown"
    body = description or "추가 개발을 통해 완성할 수 있는 미완성 프로젝트입니다."
    return f"{language}로 개발된 프로젝트입니다. {body}"
