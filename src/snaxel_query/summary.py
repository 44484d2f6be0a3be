"""Summaries over aggregated query results."""

from .models import AggregateResult, SourceSuccess, SourceTop, Summary, TopHit

TOP_N = 3


def summarize(aggregate: AggregateResult, top_n: int = TOP_N) -> Summary:
    """Count results and preview the first ``top_n`` hits of each successful source.

    Failed sources add nothing to the count and are left out of the previews.
    """
    summary = Summary(query=aggregate.query)
    for source, outcome in aggregate.by_source.items():
        if not isinstance(outcome, SourceSuccess):
            continue
        summary.total_results += len(outcome.results)
        summary.top_results.append(
            SourceTop(
                source=source,
                top=[TopHit(title=r.title, url=r.url) for r in outcome.results[:top_n]],
            )
        )
    return summary
