"""Static keyword tables used by rule-based detection and scoring.

Tables are immutable and loaded once. Components receive a Vocabulary
instance explicitly; customized vocabularies are new instances built with
the ``with_*`` helpers, never in-place edits.
"""

from dataclasses import dataclass, replace

from kg_memory.constants import (
    APPLICATION,
    DOMAIN,
    INFRASTRUCTURE,
    PERSISTENCE,
    PRESENTATION,
)


@dataclass(frozen=True)
class LayerProfile:
    """Keywords that signal an architectural layer, plus its static weight."""

    tag: str
    keywords: tuple[str, ...]
    weight: float = 1.0


@dataclass(frozen=True)
class TopicProfile:
    """A domain topic and the words that indicate it."""

    name: str
    keywords: tuple[str, ...]
    synonyms: tuple[str, ...] = ()

    @property
    def terms(self) -> tuple[str, ...]:
        return self.keywords + self.synonyms


@dataclass(frozen=True)
class TechnologyEntry:
    name: str
    aliases: tuple[str, ...] = ()
    category: str = "library"

    @property
    def key(self) -> str:
        return self.name.lower()


# Declaration order is the tie-break order.
DEFAULT_LAYERS: tuple[LayerProfile, ...] = (
    LayerProfile(
        PRESENTATION,
        (
            "react",
            "vue",
            "angular",
            "component",
            "css",
            "html",
            "ui",
            "frontend",
            "styling",
            "form",
        ),
        1.0,
    ),
    LayerProfile(
        APPLICATION,
        (
            "service",
            "controller",
            "api",
            "endpoint",
            "handler",
            "route",
            "middleware",
            "workflow",
            "usecase",
            "request",
        ),
        0.95,
    ),
    LayerProfile(
        DOMAIN,
        (
            "model",
            "entity",
            "domain",
            "business",
            "rule",
            "validation",
            "aggregate",
            "invariant",
            "logic",
            "policy",
        ),
        0.9,
    ),
    LayerProfile(
        PERSISTENCE,
        (
            "database",
            "repository",
            "sql",
            "orm",
            "query",
            "migration",
            "schema",
            "storage",
            "cache",
            "index",
        ),
        0.95,
    ),
    LayerProfile(
        INFRASTRUCTURE,
        (
            "deployment",
            "docker",
            "kubernetes",
            "config",
            "logging",
            "monitoring",
            "pipeline",
            "ci",
            "terraform",
            "server",
        ),
        0.94,
    ),
)

DEFAULT_TOPICS: tuple[TopicProfile, ...] = (
    TopicProfile(
        "security",
        ("security", "auth", "authentication", "authorization", "encryption", "vulnerability"),
        ("secure", "password", "token", "credential", "xss", "csrf", "injection"),
    ),
    TopicProfile(
        "api",
        ("api", "endpoint", "rest", "graphql", "route", "http"),
        ("request", "response", "webhook"),
    ),
    TopicProfile(
        "database",
        ("database", "sql", "query", "schema", "migration", "orm"),
        ("table", "index", "transaction"),
    ),
    TopicProfile(
        "testing",
        ("test", "testing", "unit", "integration", "e2e", "mock"),
        ("spec", "coverage", "fixture", "assertion"),
    ),
    TopicProfile(
        "performance",
        ("performance", "optimization", "speed", "latency", "cache", "memory"),
        ("fast", "slow", "throughput", "profiling"),
    ),
    TopicProfile(
        "validation",
        ("validation", "validate", "sanitize", "schema"),
        ("check", "verify", "constraint"),
    ),
    TopicProfile(
        "error-handling",
        ("error", "exception", "handling", "retry", "fallback"),
        ("failure", "crash", "catch"),
    ),
    TopicProfile(
        "logging",
        ("logging", "log", "logger", "tracing"),
        ("audit", "telemetry", "observability"),
    ),
    TopicProfile(
        "debugging",
        ("debug", "debugging", "bug", "fix"),
        ("troubleshoot", "diagnose", "breakpoint"),
    ),
    TopicProfile(
        "architecture",
        ("architecture", "layer", "module", "boundary"),
        ("decoupling", "dependency", "structure"),
    ),
    TopicProfile(
        "design",
        ("design", "pattern", "patterns", "interface"),
        ("abstraction", "principle"),
    ),
    TopicProfile(
        "coding-standards",
        ("naming", "convention", "style", "lint", "format"),
        ("readability", "standards"),
    ),
    TopicProfile(
        "styling",
        ("css", "styling", "theme", "layout", "responsive"),
        ("color", "font", "tailwind"),
    ),
    TopicProfile(
        "accessibility",
        ("accessibility", "a11y", "aria", "screen"),
        ("contrast", "keyboard"),
    ),
    TopicProfile(
        "deployment",
        ("deployment", "deploy", "release", "container"),
        ("rollout", "rollback", "environment"),
    ),
)

DEFAULT_TECHNOLOGIES: tuple[TechnologyEntry, ...] = (
    TechnologyEntry("React", ("reactjs", "react.js", "jsx", "tsx"), "framework"),
    TechnologyEntry("Vue", ("vuejs", "vue.js", "nuxt"), "framework"),
    TechnologyEntry("Angular", ("angularjs",), "framework"),
    TechnologyEntry("TypeScript", ("ts",), "language"),
    TechnologyEntry("JavaScript", ("js", "ecmascript"), "language"),
    TechnologyEntry("CSS", ("scss", "sass", "less"), "styling"),
    TechnologyEntry("Tailwind", ("tailwindcss",), "styling"),
    TechnologyEntry("Node.js", ("node", "nodejs"), "runtime"),
    TechnologyEntry("Express", ("expressjs",), "framework"),
    TechnologyEntry("Python", ("py",), "language"),
    TechnologyEntry("FastAPI", (), "framework"),
    TechnologyEntry("Django", (), "framework"),
    TechnologyEntry("Flask", (), "framework"),
    TechnologyEntry("PostgreSQL", ("postgres", "psql"), "database"),
    TechnologyEntry("MySQL", ("mariadb",), "database"),
    TechnologyEntry("MongoDB", ("mongo",), "database"),
    TechnologyEntry("Redis", (), "database"),
    TechnologyEntry("Neo4j", ("cypher",), "database"),
    TechnologyEntry("GraphQL", ("gql",), "api"),
    TechnologyEntry("Docker", ("dockerfile", "container"), "infrastructure"),
    TechnologyEntry("Kubernetes", ("k8s", "kubectl", "helm"), "infrastructure"),
    TechnologyEntry("AWS", ("lambda", "s3", "ec2"), "cloud"),
    TechnologyEntry("Terraform", ("tf",), "infrastructure"),
    TechnologyEntry("Jest", (), "testing"),
    TechnologyEntry("pytest", (), "testing"),
    TechnologyEntry("Playwright", (), "testing"),
)

# Short per-layer lists checked against directive text and topics by the scorer.
SCORING_LAYER_KEYWORDS: dict[str, tuple[str, ...]] = {
    PRESENTATION: ("ui", "component", "react", "vue", "angular", "css", "html", "frontend"),
    APPLICATION: ("service", "controller", "api", "endpoint", "business", "logic"),
    DOMAIN: ("model", "entity", "domain", "business", "rule", "validation"),
    PERSISTENCE: ("database", "repository", "sql", "orm", "storage", "data"),
    INFRASTRUCTURE: ("deployment", "docker", "kubernetes", "config", "logging", "monitoring"),
}

STOP_WORDS: frozenset[str] = frozenset(
    {
        "the", "and", "for", "are", "but", "not", "you", "all", "can", "had", "her",
        "was", "one", "our", "out", "day", "get", "has", "him", "his", "how", "its",
        "may", "new", "now", "old", "see", "two", "who", "did", "she", "use", "way",
        "with", "this", "that", "from", "they", "have", "been", "into", "will", "what",
        "when", "make", "like", "just", "over", "such", "some", "them", "then", "than",
        "also", "should", "must", "could", "would", "there", "their", "which", "about",
        "create", "add", "update", "implement", "please",
    }
)  # fmt: skip


@dataclass(frozen=True)
class Vocabulary:
    """Bundle of the keyword tables a detector or scorer needs."""

    layers: tuple[LayerProfile, ...] = DEFAULT_LAYERS
    topics: tuple[TopicProfile, ...] = DEFAULT_TOPICS
    technologies: tuple[TechnologyEntry, ...] = DEFAULT_TECHNOLOGIES
    scoring_layer_keywords: tuple[tuple[str, tuple[str, ...]], ...] = tuple(
        SCORING_LAYER_KEYWORDS.items()
    )
    stop_words: frozenset[str] = STOP_WORDS

    @classmethod
    def default(cls) -> "Vocabulary":
        return _DEFAULT

    def layer_keywords_for_scoring(self, layer: str) -> tuple[str, ...]:
        for tag, keywords in self.scoring_layer_keywords:
            if tag == layer:
                return keywords
        return ()

    def with_layer_keywords(
        self, layer: str, keywords: tuple[str, ...] | list[str]
    ) -> "Vocabulary":
        """Return a copy with extra detection keywords for ``layer``."""
        extra = tuple(k.lower() for k in keywords)
        layers = tuple(
            replace(p, keywords=p.keywords + tuple(k for k in extra if k not in p.keywords))
            if p.tag == layer
            else p
            for p in self.layers
        )
        if layers == self.layers and all(p.tag != layer for p in self.layers):
            raise ValueError(f"Unknown layer: {layer}")
        return replace(self, layers=layers)

    def with_topic(self, profile: TopicProfile) -> "Vocabulary":
        """Return a copy with ``profile`` added, replacing a same-named topic."""
        topics = tuple(t for t in self.topics if t.name != profile.name) + (profile,)
        return replace(self, topics=topics)


_DEFAULT = Vocabulary()
