class InvalidMetricError(ValueError):
    """Raised when a metric has no known ranking direction."""

    def __init__(self, metric: str):
        super().__init__(f"Metric {metric!r} is neither higher-is-better nor lower-is-better.")
        self.metric = metric
