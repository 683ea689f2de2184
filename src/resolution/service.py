"""Resolution entry point tying the pipeline stages together."""

from __future__ import annotations

import logging

from common.logging_utils import extra_context, is_debug_enabled, Timer

from .errors import CyclicDependency, ResolutionError
from .features import FeatureActivationEngine
from .graph import ConstraintGraphBuilder
from .models import ResolutionOutcome, ResolutionReport, ResolutionRequest
from .resolver import VersionResolver, resolve_graph

logger = logging.getLogger(__name__)


def _run(request: ResolutionRequest) -> ResolutionReport:
    builder = ConstraintGraphBuilder(request.manifests, request.options, request.versions)
    resolved = resolve_graph(builder, VersionResolver(request.versions, request.options), request.root)
    activation = FeatureActivationEngine(resolved, request.features).run()

    final = resolved.restrict(activation.present, activation.active_edges)
    cycle = final.find_cycle()
    if cycle:
        raise CyclicDependency([str(pkg) for pkg in cycle])
    return ResolutionReport(graph=final, features=activation.features)


def resolve(request: ResolutionRequest) -> ResolutionOutcome:
    """Resolve versions and features for ``request.root``.

    Never raises ResolutionError: a failed run is returned as the outcome's
    ``error``.
    """
    with Timer() as t:
        try:
            report = _run(request)
        except ResolutionError as exc:
            if is_debug_enabled(logger):
                logger.debug(
                    "Resolution failed",
                    extra=extra_context(
                        event="function_exit",
                        component="service",
                        action="resolve",
                        target=request.root.name,
                        outcome=type(exc).__name__,
                    ),
                )
            return ResolutionOutcome(error=exc)

    logger.info("Resolved %d packages for %s in %s ms", len(report.graph), request.root, t.duration_ms())
    return ResolutionOutcome(report=report)
