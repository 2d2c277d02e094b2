"""CLI tool for recognizing a class photo against the enrolled registry."""
import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import cv2
import numpy as np

from classroll.core.config import Settings
from classroll.core.container import ServiceContainer
from classroll.core.logging import get_logger, setup_logging
from classroll.domain.value_objects.recognition import ConfidenceLevel, RecognizedFace

logger = get_logger(__name__)

LEVEL_COLORS = {
    ConfidenceLevel.HIGH: (0, 180, 0),
    ConfidenceLevel.MEDIUM: (0, 200, 230),
    ConfidenceLevel.LOW: (0, 0, 220),
}
UNMATCHED_COLOR = (160, 160, 160)
TEXT_COLOR = (255, 255, 255)


def draw_faces(
    image: np.ndarray,
    faces: List[RecognizedFace],
    output_path: Optional[Path] = None,
    show: bool = False,
) -> np.ndarray:
    """
    Draw face boxes and suggested identities on the image.

    Args:
        image: Original image as numpy array
        faces: Recognized faces, boxes in image pixels
        output_path: Optional path to save the annotated image
        show: Display the annotated image in a window

    Returns:
        The annotated copy of the image
    """
    img_draw = image.copy()
    font_scale = 0.6
    thickness = 2
    padding = 8

    for face in faces:
        box = face.box
        x1, y1 = int(box.x), int(box.y)
        x2, y2 = int(box.x + box.width), int(box.y + box.height)
        color = LEVEL_COLORS.get(face.confidence_level, UNMATCHED_COLOR)

        cv2.rectangle(img_draw, (x1, y1), (x2, y2), color, thickness)

        if face.identity_id is not None:
            label = f"{face.face_index}: {face.identity_id} ({face.similarity:.0%})"
        elif not face.has_embedding:
            label = f"{face.face_index}: unreadable"
        else:
            label = f"{face.face_index}: unknown"

        (text_width, text_height), _ = cv2.getTextSize(
            label, cv2.FONT_HERSHEY_SIMPLEX, font_scale, thickness
        )
        top = max(0, y1 - text_height - padding * 2)
        cv2.rectangle(img_draw, (x1, top), (x1 + text_width + padding, y1), color, -1)
        cv2.putText(
            img_draw,
            label,
            (x1 + padding // 2, y1 - padding),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            TEXT_COLOR,
            thickness
        )

    if output_path:
        cv2.imwrite(str(output_path), img_draw)
        logger.info("Saved annotated image", path=str(output_path))

    if show:
        cv2.imshow("Recognized Faces", img_draw)
        cv2.waitKey(0)
        cv2.destroyAllWindows()

    return img_draw


async def recognize_photo(
    image_path: str,
    group_key: Optional[str] = None,
    threshold: Optional[float] = None,
    save_output: bool = True,
    show: bool = False,
    settings: Optional[Settings] = None,
) -> int:
    """
    Recognize the students in a photo and report the suggestions.

    Returns:
        Process exit code
    """
    image_file = Path(image_path)
    if not image_file.exists():
        logger.error("Image file not found", path=image_path)
        return 1

    image_bytes = image_file.read_bytes()
    img = cv2.imread(str(image_file))
    if img is None:
        logger.error("Failed to load image", path=image_path)
        return 1

    container = ServiceContainer(settings)
    try:
        await container.initialize()
        if not container.models_ready:
            logger.error("Face models could not be loaded")
            return 1

        result = await container.recognition_service.recognize(
            image_bytes, group_key=group_key, threshold=threshold
        )
    finally:
        await container.cleanup()

    logger.info(
        "Recognition completed",
        num_faces=len(result.faces),
        matched=sum(1 for face in result.faces if face.identity_id is not None),
        threshold=result.threshold,
        image_path=image_path,
    )
    for face in result.faces:
        logger.info(
            f"Face {face.face_index}",
            identity_id=face.identity_id,
            similarity=None if face.similarity is None else round(face.similarity, 3),
            confidence_level=None if face.confidence_level is None else face.confidence_level.value,
            detection_score=round(face.detection_score, 3),
            box=face.box.model_dump(),
        )

    output_path = None
    if save_output:
        output_path = image_file.parent / f"{image_file.stem}_recognized{image_file.suffix}"
    draw_faces(img, result.faces, output_path, show=show)
    return 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Recognize enrolled students in a class photo")
    parser.add_argument("image_path", help="Path to the image file")
    parser.add_argument("--group", dest="group_key", help="Only match identities of this group")
    parser.add_argument("--threshold", type=float, help="Minimum similarity for a match (0-1)")
    parser.add_argument("--no-save", action="store_true", help="Don't save the annotated image")
    parser.add_argument("--show", action="store_true", help="Display the annotated image")
    args = parser.parse_args()

    settings = Settings()
    setup_logging(settings)
    sys.exit(
        asyncio.run(
            recognize_photo(
                args.image_path,
                group_key=args.group_key,
                threshold=args.threshold,
                save_output=not args.no_save,
                show=args.show,
                settings=settings,
            )
        )
    )


if __name__ == "__main__":
    main()
