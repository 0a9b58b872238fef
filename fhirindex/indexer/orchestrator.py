"""Indexer orchestration logic."""

from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor

from fhirindex.utils.logging import logger

from .config import DEFAULT_MAX_WORKERS, LAST_UPDATED_INDEX_NAME
from .entities import DateIndex, ResourceIndices
from .exceptions import IndexerError
from .extractors import get_extractor
from .fhirpath import FhirPathEvaluator, PathEvaluator
from .resource import Resource
from .schemas import SchemaRegistry


class ResourceIndexer:
    """Extracts search parameter index entries from FHIR resources.

    Discovery -> path evaluation -> category extraction -> aggregation. The
    indexer holds no mutable state; the registry and the evaluator are
    injected and shared, so several threads may index different resources
    through one instance as long as the evaluator is thread-safe.
    """

    def __init__(self, registry: SchemaRegistry, evaluator: PathEvaluator | None = None):
        """Initialize the indexer.

        Args:
            registry: Source of search parameter definitions
            evaluator: Path evaluator; defaults to FhirPathEvaluator over registry
        """
        self.registry = registry
        self.evaluator = evaluator or FhirPathEvaluator(registry)

    def index(self, resource: Resource) -> ResourceIndices:
        """Index one resource.

        Raises:
            SchemaError: If no definitions can be discovered for the resource type
            PathEvaluationError: If a definition's path cannot be evaluated

        Either error aborts the whole resource; no partial result escapes.
        """
        resource_type = resource.resource_type
        definitions = self.registry.search_parameters(resource_type)
        builder = ResourceIndices.Builder(resource_type, resource.logical_id)

        for definition in definitions:
            extractor = get_extractor(definition.category)
            if extractor is None:
                # Composite and special parameters are not indexed
                logger.debug(
                    f"Skipping {definition.category.name} search parameter "
                    f"{resource_type}.{definition.name}"
                )
                continue

            for value in self.evaluator.evaluate(resource, definition.path):
                entries = extractor(definition, value)
                if not entries:
                    logger.debug(
                        f"No {definition.category.name} entry for {definition.name} "
                        f"from {value.shape} value"
                    )
                for entry in entries:
                    builder.add(entry)

        last_updated = resource.last_updated
        if last_updated is not None:
            builder.add(
                DateIndex(
                    name=LAST_UPDATED_INDEX_NAME,
                    path=".".join([resource_type, "meta", "lastUpdated"]),
                    ts_low=last_updated.epoch_millis,
                    ts_high=last_updated.epoch_millis,
                    precision=last_updated.precision,
                )
            )

        return builder.build()

    def index_all(
        self, resources: Iterable[Resource], max_workers: int | None = None
    ) -> list[ResourceIndices]:
        """Index many resources in parallel.

        Results keep the input order. The first fatal error (in input order)
        cancels work that has not started and is re-raised.
        """
        resources = list(resources)
        if not resources:
            return []

        workers = max(1, min(max_workers or DEFAULT_MAX_WORKERS, len(resources)))
        executor = ThreadPoolExecutor(max_workers=workers)
        try:
            futures = [executor.submit(self.index, resource) for resource in resources]
            results = []
            for resource, future in zip(resources, futures):
                try:
                    results.append(future.result())
                except IndexerError as e:
                    logger.error(
                        f"Indexing {resource.resource_type}/{resource.logical_id} failed: {e}"
                    )
                    raise
            return results
        except BaseException:
            executor.shutdown(wait=True, cancel_futures=True)
            raise
        finally:
            executor.shutdown(wait=True)

