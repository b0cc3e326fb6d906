"""
Classifier Context
==================

Owns the long-lived collaborators of the classification pipeline:
database pool, embedding + vector search adapter, decision service and
the in-memory taxonomy index.

Constructed explicitly and passed to ProductClassifier. Nothing here is
a module-level singleton, so tests build a context from fakes.

Usage:
    async with ClassifierContext(settings) as context:
        classifier = ProductClassifier(context)
        result = await classifier.classify(product)
"""

from types import TracebackType

from taxonomy_classifier.config.settings import Settings, get_settings
from taxonomy_classifier.db.connection import DatabaseManager
from taxonomy_classifier.rag.decision_service import DecisionService
from taxonomy_classifier.rag.vector_service import VectorService
from taxonomy_classifier.services.ports import (
    DecisionProvider,
    EmbeddingProvider,
    TaxonomyLookup,
    VectorStore,
)
from taxonomy_classifier.services.taxonomy_index import TaxonomyIndex
from taxonomy_classifier.utils.errors import ConfigurationError, TaxonomyNotLoadedError
from taxonomy_classifier.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


class ClassifierContext:
    """
    Dependency container with an explicit lifecycle.

    Any collaborator passed to the constructor is used as-is; the rest
    are built by init() from settings.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        embeddings: EmbeddingProvider | None = None,
        vector_store: VectorStore | None = None,
        decision: DecisionProvider | None = None,
        taxonomy: TaxonomyLookup | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._embeddings = embeddings
        self._vector_store = vector_store
        self._decision = decision
        self._taxonomy = taxonomy
        self._db: DatabaseManager | None = None
        self._vector_service: VectorService | None = None
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def embeddings(self) -> EmbeddingProvider:
        if self._embeddings is None:
            raise ConfigurationError(message="Context not initialized: embeddings")
        return self._embeddings

    @property
    def vector_store(self) -> VectorStore:
        if self._vector_store is None:
            raise ConfigurationError(message="Context not initialized: vector store")
        return self._vector_store

    @property
    def decision(self) -> DecisionProvider:
        if self._decision is None:
            raise ConfigurationError(message="Context not initialized: decision service")
        return self._decision

    @property
    def taxonomy(self) -> TaxonomyLookup:
        if self._taxonomy is None:
            raise TaxonomyNotLoadedError(
                message="Taxonomy not loaded",
                details={"path": str(self.settings.taxonomy_json_path)},
            )
        return self._taxonomy

    async def init(self) -> "ClassifierContext":
        """
        Build missing collaborators.

        Idempotent; calling it on an initialized context does nothing.

        Raises:
            ConfigurationError: If taxonomy data cannot be loaded
            DatabaseError: If the connection pool cannot be created
        """
        if self._initialized:
            return self

        configure_logging(self.settings)

        if self._taxonomy is None:
            self._taxonomy = TaxonomyIndex.from_files(
                self.settings.taxonomy_json_path,
                self.settings.product_type_mappings_path,
            )

        if self._embeddings is None or self._vector_store is None:
            self._db = await DatabaseManager(self.settings).initialize()
            self._vector_service = VectorService(self._db, self.settings)
            if self._embeddings is None:
                self._embeddings = self._vector_service
            if self._vector_store is None:
                self._vector_store = self._vector_service

        if self._decision is None:
            self._decision = DecisionService(self.settings)

        self._initialized = True
        logger.info(
            "Classifier context initialized",
            environment=self.settings.environment,
            owns_database=self._db is not None,
        )
        return self

    async def dispose(self) -> None:
        """Release owned resources. Injected collaborators are left alone."""
        if self._db is not None:
            try:
                await self._db.close()
            except Exception as e:
                logger.error("Error closing database connections", error=str(e))
            self._db = None

        # adapters bound to the closed pool are rebuilt by the next init()
        if self._vector_service is not None:
            if self._embeddings is self._vector_service:
                self._embeddings = None
            if self._vector_store is self._vector_service:
                self._vector_store = None
            self._vector_service = None

        self._initialized = False
        logger.info("Classifier context disposed")

    async def __aenter__(self) -> "ClassifierContext":
        return await self.init()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.dispose()
