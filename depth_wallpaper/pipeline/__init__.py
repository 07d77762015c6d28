from .render_pipeline import RenderPipeline, process_image

__all__ = ["RenderPipeline", "process_image"]
