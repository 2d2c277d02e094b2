"""Service container for dependency injection."""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from classroll.core.config import Settings
from classroll.core.exceptions import ModelLoadError, ServiceNotInitializedError
from classroll.core.logging import get_logger

# Import interfaces
from classroll.domain.interfaces.recognition.embedding_extractor import EmbeddingExtractor
from classroll.domain.interfaces.recognition.face_detector import FaceDetector, FaceLocator
from classroll.domain.interfaces.storage.attendance_store import AttendanceStore
from classroll.domain.interfaces.storage.identity_store import IdentityStore

# Import concrete implementations used for instantiation
from classroll.infrastructure.database.repositories import SqlAttendanceStore, SqlIdentityStore
from classroll.infrastructure.database.session import create_engine, create_schema, create_session_factory
from classroll.services.attendance import AttendanceService
from classroll.services.enrollment import EnrollmentService
from classroll.services.identity_registry import IdentityRegistry
from classroll.services.matching.matcher import Matcher
from classroll.services.recognition.face_detection import FaceDetectionService
from classroll.services.recognition.inference import InferenceGate
from classroll.services.recognition_pipeline import PhotoRecognitionService

logger = get_logger(__name__)


class ServiceContainer:
    """Container for application services.

    This container owns the lifecycle of every service: construct ->
    ``initialize()`` -> use -> ``cleanup()``. One container is created per
    application and injected where needed; there is no module-level instance.

    Model or storage backends can be injected (tests use fakes); anything not
    injected is built from settings, InsightFace for the models and
    SQLAlchemy for storage.

    Example:
        ```python
        container = ServiceContainer(Settings())
        await container.initialize()

        result = await container.recognition_service.recognize(photo, group_key="5A")
        ```
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        locator: Optional[FaceLocator] = None,
        extractor: Optional[EmbeddingExtractor] = None,
        identity_store: Optional[IdentityStore] = None,
        attendance_store: Optional[AttendanceStore] = None,
    ) -> None:
        """Initialize empty container."""
        self.settings = settings or Settings()

        # Core services - Use interface type hints
        self.locator: Optional[FaceLocator] = locator
        self.extractor: Optional[EmbeddingExtractor] = extractor
        self.identity_store: Optional[IdentityStore] = identity_store
        self.attendance_store: Optional[AttendanceStore] = attendance_store
        self.engine: Optional[AsyncEngine] = None

        self.gate: Optional[InferenceGate] = None
        self.detector: Optional[FaceDetector] = None
        self.registry: Optional[IdentityRegistry] = None
        self.matcher: Optional[Matcher] = None

        # Domain services (depend on interfaces)
        self.enrollment_service: Optional[EnrollmentService] = None
        self.recognition_service: Optional[PhotoRecognitionService] = None
        self.attendance_service: Optional[AttendanceService] = None

        self.initialized = False

    @property
    def models_ready(self) -> bool:
        return self.detector is not None and self.detector.is_ready

    def _build_models(self) -> None:
        if self.locator is not None and self.extractor is not None:
            return
        # Imported here so the InsightFace stack is only required when it is used
        from classroll.services.recognition.insight_face import (
            InsightFaceEmbeddingExtractor,
            InsightFaceLocator,
            InsightFaceModel,
        )

        model = InsightFaceModel(
            model_name=self.settings.MODEL_NAME,
            model_root=self.settings.MODEL_CACHE_DIR,
            providers=self.settings.model_providers,
            det_size=self.settings.detection_size,
        )
        self.locator = self.locator or InsightFaceLocator(model)
        self.extractor = self.extractor or InsightFaceEmbeddingExtractor(
            model, dimension=self.settings.EMBEDDING_DIMENSION
        )

    async def _build_storage(self) -> None:
        if self.identity_store is not None and self.attendance_store is not None:
            return
        self.engine = create_engine(self.settings.DATABASE_URL, echo=self.settings.DEBUG)
        await create_schema(self.engine)
        session_factory = create_session_factory(self.engine)
        self.identity_store = self.identity_store or SqlIdentityStore(session_factory)
        self.attendance_store = self.attendance_store or SqlAttendanceStore(session_factory)

    async def initialize(self) -> None:
        """Initialize all services in the correct order.

        A model load failure is logged once and left for an explicit
        ``initialize_models()`` retry; storage and registry failures propagate.
        """
        if self.initialized:
            return

        settings = self.settings
        self._build_models()
        await self._build_storage()

        self.gate = InferenceGate()
        self.detector = FaceDetectionService(
            locator=self.locator,
            extractor=self.extractor,
            max_faces=settings.MAX_FACES_PER_IMAGE,
            min_detection_score=settings.MIN_DETECTION_SCORE,
            crop_margin=settings.FACE_CROP_MARGIN,
        )
        self.registry = IdentityRegistry(
            store=self.identity_store,
            embedding_dimension=self.extractor.dimension,
        )
        await self.registry.load()

        self.matcher = Matcher(
            metric=self.extractor.metric,
            default_threshold=settings.MATCH_THRESHOLD,
            embedding_dimension=self.extractor.dimension,
        )
        self.enrollment_service = EnrollmentService(
            extractor=self.extractor,
            registry=self.registry,
            gate=self.gate,
            max_image_pixels=settings.MAX_IMAGE_PIXELS,
        )
        self.recognition_service = PhotoRecognitionService(
            detector=self.detector,
            registry=self.registry,
            matcher=self.matcher,
            gate=self.gate,
            max_image_pixels=settings.MAX_IMAGE_PIXELS,
            high_confidence=settings.HIGH_CONFIDENCE_THRESHOLD,
            medium_confidence=settings.MEDIUM_CONFIDENCE_THRESHOLD,
        )
        self.attendance_service = AttendanceService(
            registry=self.registry,
            store=self.attendance_store,
        )
        self.initialized = True

        try:
            await self.initialize_models()
        except ModelLoadError as e:
            logger.error("Face models unavailable; recognition disabled until reload", error=str(e))

    async def initialize_models(self) -> None:
        """Load the face models; safe to call again after a failure.

        Raises:
            ServiceNotInitializedError: If the container was not initialized
            ModelLoadError: If the models fail to load
        """
        if self.detector is None:
            raise ServiceNotInitializedError("Service container not initialized")
        await self.detector.initialize()
        logger.info("Face models ready")

    async def cleanup(self) -> None:
        """Cleanup all services in reverse order of initialization."""
        # Cleanup domain services
        self.attendance_service = None
        self.recognition_service = None
        self.enrollment_service = None

        # Cleanup core services
        if self.detector is not None:
            await self.detector.dispose()
        self.detector = None
        self.matcher = None
        self.registry = None
        self.gate = None

        # Cleanup infrastructure services
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self.identity_store = None
            self.attendance_store = None
        self.initialized = False
