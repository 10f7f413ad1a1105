"""Optional saving of generated images with JSON sidecar metadata.

When ``save_outputs`` is enabled, each finished session is written to
``outputs_dir/<session_id>/`` as one image file plus one ``.json`` file per
variant.  Saving is best-effort: failures are logged and never interrupt the
workflow.
"""

import json
import logging
from datetime import datetime
from pathlib import Path

from .config import StudioConfig
from .images import extension_for
from .session import StudioSession

logger = logging.getLogger(__name__)


def save_generated_images(session: StudioSession, config: StudioConfig) -> list[Path]:
    """Write a session's generated images and metadata to disk.

    Args:
        session: A session holding generated images.
        config: Configuration providing ``save_outputs`` and ``outputs_dir``.

    Returns:
        Paths of the image files written (empty when saving is disabled).
    """
    if not config.save_outputs or not session.images:
        return []

    output_dir = config.outputs_dir / session.session_id
    saved: list[Path] = []

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Cannot create output folder {output_dir}: {e}")
        return []

    analysis = session.analysis
    for image in session.images:
        image_path = output_dir / f"{image.id}{extension_for(image.mime_type)}"
        try:
            image_path.write_bytes(image.data)

            metadata = {
                **image.to_metadata(),
                "session_id": session.session_id,
                "analysis_model": config.analysis_model,
                "image_model": config.image_model,
                "face_shape": analysis.face_shape if analysis else None,
                "hairstyle": analysis.hairstyle if analysis else None,
                "outfit": analysis.outfit if analysis else None,
                "timestamp": datetime.now().isoformat(),
                "image_path": str(image_path),
            }
            json_path = image_path.with_suffix(".json")
            with open(json_path, "w", encoding="utf-8") as f:
                json.dump(metadata, f, indent=2, ensure_ascii=False)

            saved.append(image_path)
        except OSError as e:
            logger.error(f"Failed to save image {image.id}: {e}", exc_info=True)

    logger.info(f"Saved {len(saved)} images to {output_dir}")
    return saved
