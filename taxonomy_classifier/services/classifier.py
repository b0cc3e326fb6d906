"""
Product Classifier
==================

Orchestrates the classification pipeline for one product:

    ClassificationInput
        → Bundle detection (depth ceiling)
        → Candidate generation (type anchor + similarity search)
        → Decision service selects a candidate
        → Selection validation / bundle depth truncation
        → Category resolution + confidence scoring
        → Optional attribute extraction
        → ClassificationOutput

Follows:
- Single Responsibility: Orchestration only
- Dependency Inversion: Depends on collaborator ports, not concrete clients
- Error Isolation: Per-item error handling in batches
"""

from taxonomy_classifier.config.settings import Settings
from taxonomy_classifier.rag.prompt_templates import (
    build_attribute_extraction_prompt,
    build_classification_system_prompt,
    build_classification_user_prompt,
)
from taxonomy_classifier.rag.response_parser import parse_attribute_response, require_decision
from taxonomy_classifier.schemas.domain import (
    AttributeAssignment,
    BatchItemResult,
    BundleDetection,
    CategoryAssignment,
    CategoryCandidate,
    ClassificationInput,
    ClassificationOutput,
    ClassifierConfig,
    ModelVariant,
    SelectionDecision,
)
from taxonomy_classifier.schemas.taxonomy import TaxonomyCategory
from taxonomy_classifier.services.bundle_detector import detect_bundle
from taxonomy_classifier.services.candidate_generator import (
    CandidateGenerator,
    CandidateRetrieval,
    build_search_text,
)
from taxonomy_classifier.services.confidence import (
    ConfidenceWeights,
    adjust_category_for_bundle,
    build_signals,
    calculate_confidence,
    needs_review,
    validate_selection,
)
from taxonomy_classifier.services.context import ClassifierContext
from taxonomy_classifier.services.ports import DecisionProvider
from taxonomy_classifier.utils.errors import (
    CategoryNotFoundError,
    ClassifierError,
    DecisionParseError,
    LLMError,
    NoCandidatesError,
)
from taxonomy_classifier.utils.logger import classification_log_context, get_logger

logger = get_logger(__name__)

MAX_BATCH_SIZE = 10
OFFLINE_DECISION_CONFIDENCE = 0.5
OFFLINE_REASONING = "Selected top embedding match (offline mode)"


class ProductClassifier:
    """
    Product taxonomy classifier.

    Usage:
        async with ClassifierContext(settings) as context:
            classifier = ProductClassifier(context)
            result = await classifier.classify(product)

            # Without the decision service
            result = await classifier.classify_offline(product)
    """

    def __init__(self, context: ClassifierContext) -> None:
        """
        Initialize ProductClassifier.

        Args:
            context: Initialized context, or one built from injected collaborators.
                The decision service is only required by classify().
        """
        self._context = context
        self._settings: Settings = context.settings
        self._taxonomy = context.taxonomy
        self._generator = CandidateGenerator(
            context.embeddings,
            context.vector_store,
            context.taxonomy,
            context.settings,
        )
        self._weights = ConfidenceWeights.from_settings(context.settings)

    def default_config(self) -> ClassifierConfig:
        """Request config populated from settings."""
        return ClassifierConfig(
            confidence_threshold=self._settings.confidence_threshold,
            max_candidates=self._settings.default_max_candidates,
        )

    async def classify(
        self,
        product: ClassificationInput,
        config: ClassifierConfig | None = None,
    ) -> ClassificationOutput:
        """
        Classify a product into the category hierarchy.

        Args:
            product: Product to classify
            config: Per-request configuration (defaults from settings)

        Returns:
            ClassificationOutput

        Raises:
            NoCandidatesError: If retrieval produced no candidates
            DecisionParseError: If the decision service failed or its output is unusable
            CategoryNotFoundError: If the final code is not in the hierarchy
            RetrievalError: If every candidate source failed
            ConfigurationError: If the context has no decision service
        """
        with classification_log_context(product.title):
            return await self._classify(product, config or self.default_config())

    async def _classify(
        self,
        product: ClassificationInput,
        cfg: ClassifierConfig,
    ) -> ClassificationOutput:
        bundle = detect_bundle(product)
        retrieval = await self._retrieve(product, cfg, bundle)
        candidates = retrieval.candidates

        decision = await self._select(product, candidates, cfg.model)

        selected = validate_selection(decision.selected_code, candidates)
        if selected is None:
            logger.warning(
                "LLM selected invalid code, falling back to top candidate",
                selected_code=decision.selected_code,
                fallback_code=candidates[0].code,
            )
            selected = candidates[0]

        code = adjust_category_for_bundle(selected.code, bundle)
        category = self._resolve(code)

        top_match = retrieval.top_match
        confidence = calculate_confidence(
            decision.confidence,
            embedding_score=top_match.score if top_match else None,
            bundle_detection=bundle,
            weights=self._weights,
        )

        attributes: list[AttributeAssignment] = []
        if cfg.extract_attributes and category.attributes:
            attributes = await self._extract_attributes(product, category, cfg.model)

        output = ClassificationOutput(
            category=CategoryAssignment(
                code=code,
                path=category.full_name,
                gid=category.id,
                confidence=confidence,
            ),
            attributes=attributes,
            reasoning=decision.reasoning,
            needs_review=needs_review(confidence, cfg.confidence_threshold),
            signals=build_signals(bundle, top_match, self._generator.match_product_type(product)),
        )

        logger.info(
            "Product classified",
            category_code=code,
            confidence=round(confidence, 4),
            needs_review=output.needs_review,
            is_bundle=bundle.is_bundle,
            attributes_count=len(attributes),
        )
        return output

    async def classify_offline(
        self,
        product: ClassificationInput,
        config: ClassifierConfig | None = None,
    ) -> ClassificationOutput:
        """
        Classify without calling the decision service.

        Takes the top candidate with a fixed decision confidence; the
        result is always flagged for review and carries no attributes.
        The context does not need a decision service.

        Raises:
            NoCandidatesError: If retrieval produced no candidates
            CategoryNotFoundError: If the final code is not in the hierarchy
        """
        with classification_log_context(product.title, offline=True):
            return await self._classify_offline(product, config or self.default_config())

    async def _classify_offline(
        self,
        product: ClassificationInput,
        cfg: ClassifierConfig,
    ) -> ClassificationOutput:
        bundle = detect_bundle(product)
        retrieval = await self._retrieve(product, cfg, bundle)

        top = retrieval.candidates[0]
        code = adjust_category_for_bundle(top.code, bundle)
        category = self._resolve(code)

        top_match = retrieval.top_match
        confidence = calculate_confidence(
            OFFLINE_DECISION_CONFIDENCE,
            embedding_score=top_match.score if top_match else None,
            bundle_detection=bundle,
            weights=self._weights,
        )

        logger.info(
            "Product classified offline",
            category_code=code,
            confidence=round(confidence, 4),
        )

        return ClassificationOutput(
            category=CategoryAssignment(
                code=code,
                path=category.full_name,
                gid=category.id,
                confidence=confidence,
            ),
            attributes=[],
            reasoning=OFFLINE_REASONING,
            needs_review=True,
            signals=build_signals(bundle, top_match, self._generator.match_product_type(product)),
        )

    async def classify_batch(
        self,
        products: list[ClassificationInput],
        config: ClassifierConfig | None = None,
        offline: bool = False,
    ) -> list[BatchItemResult]:
        """
        Classify up to ten products one after another.

        A failing product does not stop the batch; its entry carries the
        error message and type instead of a result.

        Raises:
            ValueError: If the batch is empty or larger than ten products
        """
        if not products or len(products) > MAX_BATCH_SIZE:
            raise ValueError(f"Batch must contain 1 to {MAX_BATCH_SIZE} products, got {len(products)}")

        results: list[BatchItemResult] = []
        for index, product in enumerate(products):
            with classification_log_context(product.title, batch_index=index):
                results.append(await self._classify_batch_item(product, config, offline))

        logger.info(
            "Batch classified",
            count=len(products),
            succeeded=sum(1 for r in results if r.success),
            failed=sum(1 for r in results if not r.success),
            offline=offline,
        )
        return results

    async def _classify_batch_item(
        self,
        product: ClassificationInput,
        config: ClassifierConfig | None,
        offline: bool,
    ) -> BatchItemResult:
        try:
            if offline:
                output = await self.classify_offline(product, config)
            else:
                output = await self.classify(product, config)
        except ClassifierError as e:
            logger.warning("Batch item failed", error=e.message, error_type=type(e).__name__)
            return BatchItemResult(success=False, error=e.message, error_type=type(e).__name__)
        except Exception as e:
            logger.exception("Unexpected error in batch item")
            return BatchItemResult(success=False, error=str(e), error_type=type(e).__name__)

        return BatchItemResult(success=True, result=output)

    def get_search_text(self, product: ClassificationInput) -> str:
        """Text used for the similarity search. Debugging aid."""
        return build_search_text(product)

    @property
    def _decision(self) -> DecisionProvider:
        # offline classification never reads this
        return self._context.decision

    # -------------------------------------------------------------------------
    # Pipeline steps
    # -------------------------------------------------------------------------

    async def _retrieve(
        self,
        product: ClassificationInput,
        cfg: ClassifierConfig,
        bundle: BundleDetection,
    ) -> CandidateRetrieval:
        max_depth = bundle.recommended_max_depth if bundle.is_bundle else None
        if bundle.is_bundle:
            logger.debug("Bundle detected", signals=bundle.signals, max_depth=max_depth)

        retrieval = await self._generator.retrieve(
            product,
            max_candidates=cfg.max_candidates,
            max_depth=max_depth,
        )
        if not retrieval.candidates:
            raise NoCandidatesError(
                message="No category candidates found for product",
                details={"title": product.title, "max_depth": max_depth},
            )
        return retrieval

    async def _select(
        self,
        product: ClassificationInput,
        candidates: list[CategoryCandidate],
        model: ModelVariant,
    ) -> SelectionDecision:
        system_prompt = build_classification_system_prompt()
        user_prompt = build_classification_user_prompt(product, candidates)

        logger.debug(
            "Candidates sent for selection",
            candidates=[{"code": c.code, "score": round(c.score, 3)} for c in candidates],
        )

        try:
            response = await self._decision.complete(user_prompt, system_prompt, model=model)
        except LLMError as e:
            raise DecisionParseError(
                message="Decision service call failed",
                details={"error": e.message, **e.details},
            ) from e

        return require_decision(response)

    def _resolve(self, code: str) -> TaxonomyCategory:
        category = self._taxonomy.by_code(code)
        if category is None:
            raise CategoryNotFoundError(
                message=f"Category not found: {code}",
                details={"code": code},
            )
        return category

    async def _extract_attributes(
        self,
        product: ClassificationInput,
        category: TaxonomyCategory,
        model: ModelVariant,
    ) -> list[AttributeAssignment]:
        """
        Extract attribute values for the assigned category.

        Category nodes only carry abbreviated attribute copies; full
        definitions (with allowed values) come from the hierarchy.
        Any failure yields an empty list.
        """
        available: list[dict] = []
        for ref in category.attributes:
            attr = self._taxonomy.attribute_by_handle(ref.resolved_handle)
            if attr is None:
                continue
            available.append(
                {
                    "handle": attr.resolved_handle,
                    "name": attr.name,
                    "values": [v.name for v in attr.values],
                }
            )

        if not available:
            return []

        prompt = build_attribute_extraction_prompt(product, category.full_name, available)

        try:
            response = await self._decision.complete(prompt, model=model)
        except Exception as e:
            logger.warning(
                "Attribute extraction failed",
                category=category.full_name,
                error=str(e),
            )
            return []

        names = {a["handle"]: a["name"] for a in available}
        return [
            AttributeAssignment(
                handle=extracted.handle,
                name=names.get(extracted.handle, extracted.handle),
                value=extracted.value,
                confidence=extracted.confidence,
            )
            for extracted in parse_attribute_response(response)
        ]
