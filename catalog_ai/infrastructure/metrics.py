"""
Prometheusメトリクス収集

AIプロバイダー呼び出しとAI出力復元の監視メトリクスを収集・公開
"""
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Optional

DEFAULT_BUCKETS = [0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0]


def _label_key(label_names: list[str], labels: dict) -> tuple:
    return tuple(str(labels.get(name, "")) for name in label_names)


@dataclass
class Counter:
    """カウンターメトリクス"""

    name: str
    description: str
    labels: list[str] = field(default_factory=list)
    _values: dict[tuple, float] = field(default_factory=dict)

    def inc(self, value: float = 1.0, **labels) -> None:
        """カウンターを増加"""
        key = _label_key(self.labels, labels)
        self._values[key] = self._values.get(key, 0) + value

    def get(self, **labels) -> float:
        """現在の値を取得"""
        return self._values.get(_label_key(self.labels, labels), 0)


@dataclass
class Gauge:
    """ゲージメトリクス"""

    name: str
    description: str
    labels: list[str] = field(default_factory=list)
    _values: dict[tuple, float] = field(default_factory=dict)

    def set(self, value: float, **labels) -> None:
        """値を設定"""
        self._values[_label_key(self.labels, labels)] = value

    def get(self, **labels) -> float:
        """現在の値を取得"""
        return self._values.get(_label_key(self.labels, labels), 0)


@dataclass
class Histogram:
    """ヒストグラムメトリクス"""

    name: str
    description: str
    labels: list[str] = field(default_factory=list)
    buckets: list[float] = field(default_factory=lambda: list(DEFAULT_BUCKETS))
    _counts: dict[tuple, dict[float, int]] = field(default_factory=dict)
    _sums: dict[tuple, float] = field(default_factory=dict)
    _totals: dict[tuple, int] = field(default_factory=dict)

    def observe(self, value: float, **labels) -> None:
        """観測値を記録（バケットは非累積で保持）"""
        key = _label_key(self.labels, labels)

        if key not in self._counts:
            self._counts[key] = {b: 0 for b in self.buckets}
            self._counts[key][float('inf')] = 0

        for bucket in sorted(self._counts[key]):
            if value <= bucket:
                self._counts[key][bucket] += 1
                break

        self._sums[key] = self._sums.get(key, 0) + value
        self._totals[key] = self._totals.get(key, 0) + 1

    def count(self, **labels) -> int:
        """観測回数を取得"""
        return self._totals.get(_label_key(self.labels, labels), 0)


class MetricsRegistry:
    """メトリクスレジストリ"""

    def __init__(self):
        self._metrics: dict[str, Counter | Gauge | Histogram] = {}

    def counter(
        self,
        name: str,
        description: str,
        labels: Optional[list[str]] = None,
    ) -> Counter:
        """カウンターを登録・取得"""
        if name not in self._metrics:
            self._metrics[name] = Counter(name, description, labels or [])
        return self._metrics[name]

    def gauge(
        self,
        name: str,
        description: str,
        labels: Optional[list[str]] = None,
    ) -> Gauge:
        """ゲージを登録・取得"""
        if name not in self._metrics:
            self._metrics[name] = Gauge(name, description, labels or [])
        return self._metrics[name]

    def histogram(
        self,
        name: str,
        description: str,
        labels: Optional[list[str]] = None,
        buckets: Optional[list[float]] = None,
    ) -> Histogram:
        """ヒストグラムを登録・取得"""
        if name not in self._metrics:
            self._metrics[name] = Histogram(
                name, description, labels or [], buckets or list(DEFAULT_BUCKETS)
            )
        return self._metrics[name]

    def export_prometheus(self) -> str:
        """Prometheus形式でエクスポート"""
        lines = []

        for name, metric in self._metrics.items():
            lines.append(f"# HELP {name} {metric.description}")

            if isinstance(metric, (Counter, Gauge)):
                metric_type = "counter" if isinstance(metric, Counter) else "gauge"
                lines.append(f"# TYPE {name} {metric_type}")
                for key, value in metric._values.items():
                    lines.append(f"{name}{self._format_labels(metric.labels, key)} {value}")

            elif isinstance(metric, Histogram):
                lines.append(f"# TYPE {name} histogram")
                for key, bucket_counts in metric._counts.items():
                    cumulative = 0
                    for bucket, count in sorted(bucket_counts.items()):
                        cumulative += count
                        le = "+Inf" if bucket == float('inf') else str(bucket)
                        label_str = self._format_labels(
                            metric.labels + ["le"], key + (le,)
                        )
                        lines.append(f"{name}_bucket{label_str} {cumulative}")
                    label_str = self._format_labels(metric.labels, key)
                    lines.append(f"{name}_sum{label_str} {metric._sums.get(key, 0)}")
                    lines.append(f"{name}_count{label_str} {metric._totals.get(key, 0)}")

        return "\n".join(lines) + "\n"

    def _format_labels(self, label_names: list[str], label_values: tuple) -> str:
        """ラベルをPrometheus形式にフォーマット"""
        if not label_names:
            return ""
        pairs = [f'{name}="{value}"' for name, value in zip(label_names, label_values)]
        return "{" + ",".join(pairs) + "}"


# グローバルレジストリ
_registry: Optional[MetricsRegistry] = None


def get_metrics_registry() -> MetricsRegistry:
    """メトリクスレジストリのシングルトンを取得"""
    global _registry
    if _registry is None:
        _registry = MetricsRegistry()
    return _registry


# 定義済みメトリクス

def get_provider_requests() -> Counter:
    """AIプロバイダーリクエストカウンター"""
    return get_metrics_registry().counter(
        "ai_provider_requests_total",
        "Total number of AI provider requests",
        ["provider", "status"]
    )


def get_provider_duration() -> Histogram:
    """AIプロバイダー呼び出し時間"""
    return get_metrics_registry().histogram(
        "ai_provider_request_duration_seconds",
        "AI provider request duration in seconds",
        ["provider"],
    )


def get_provider_tokens() -> Counter:
    """AIプロバイダートークン使用量"""
    return get_metrics_registry().counter(
        "ai_provider_tokens_total",
        "Total number of tokens used",
        ["provider", "type"]
    )


def get_recovery_counter() -> Counter:
    """AI出力復元結果カウンター（strict / fallback / failed）"""
    return get_metrics_registry().counter(
        "ai_output_recovery_total",
        "AI output recovery outcomes",
        ["handler", "strategy"]
    )


def get_db_pool_gauge() -> Gauge:
    """DBコネクションプール状態"""
    return get_metrics_registry().gauge(
        "db_pool_connections",
        "Database connection pool status",
        ["state"]
    )


def get_error_counter() -> Counter:
    """エラーカウンター"""
    return get_metrics_registry().counter(
        "errors_total",
        "Total number of errors",
        ["type", "code"]
    )


@contextmanager
def measure_time(histogram: Histogram, **labels):
    """
    処理時間を計測するコンテキストマネージャー

    使用例:
        with measure_time(get_provider_duration(), provider="gemini"):
            ...
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.observe(time.perf_counter() - start, **labels)
