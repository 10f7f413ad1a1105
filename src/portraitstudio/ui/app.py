"""Gradio UI for Portrait Studio."""

import logging

import gradio as gr

from portraitstudio.core.config import config
from portraitstudio.core.plan import SET_1, SET_2
from portraitstudio.core.session import StudioSession

from .handlers import begin_generation, begin_upload, handle_reset, run_analysis, run_generation
from .rendering import INSTRUCTIONS_MARKDOWN, format_analysis, set_header, set_status

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


CUSTOM_CSS = """
.analysis-panel {
    border-left: 2px solid #34d399;
    padding-left: 12px;
}
.status-label {
    text-align: center;
    text-transform: uppercase;
    letter-spacing: 0.15em;
}
"""


def create_ui() -> tuple[gr.Blocks, str]:
    """Create the Gradio UI.

    Returns:
        Tuple of (Gradio Blocks app, custom CSS string)
    """
    app = gr.Blocks(title="Portrait Studio")

    with app:
        # Session state - one instance per user
        session_state = gr.State(StudioSession())

        gr.Markdown(
            """
            # Advanced Portrait Photography
            ### Character Profile Edition
            """
        )

        with gr.Row():
            with gr.Column(scale=1):
                photo = gr.Image(
                    label="Upload Portrait (High Resolution JPG/PNG)",
                    type="filepath",
                    sources=["upload", "clipboard"],
                    height=420,
                )
                analysis_md = gr.Markdown(
                    value=format_analysis(StudioSession()), elem_classes=["analysis-panel"]
                )

                gr.Markdown("**Please Operate:**")
                with gr.Row():
                    delete_btn = gr.Button("Delete", variant="stop", interactive=False)
                    run_btn = gr.Button("Run", variant="primary", visible=False)
                status_md = gr.Markdown(value="", elem_classes=["status-label"])
                error_md = gr.Markdown(value="", visible=False)

            with gr.Column(scale=2):
                gr.Markdown(set_header(SET_1))
                set_1_status = gr.Markdown(value=set_status(StudioSession(), SET_1))
                set_1_gallery = gr.Gallery(
                    label=None,
                    show_label=False,
                    columns=2,
                    height=420,
                    object_fit="cover",
                    type="pil",
                )

                gr.Markdown(set_header(SET_2))
                set_2_status = gr.Markdown(value=set_status(StudioSession(), SET_2))
                set_2_gallery = gr.Gallery(
                    label=None,
                    show_label=False,
                    columns=2,
                    height=420,
                    object_fit="cover",
                    type="pil",
                )

                instructions_md = gr.Markdown(INSTRUCTIONS_MARKDOWN, visible=False)

        # Same order as rendering.VIEW_FIELDS
        view = [
            photo,
            analysis_md,
            status_md,
            run_btn,
            delete_btn,
            set_1_status,
            set_1_gallery,
            set_2_status,
            set_2_gallery,
            instructions_md,
            error_md,
        ]
        outputs = [session_state, *view]

        # Upload -> analysis
        photo.upload(
            fn=begin_upload,
            inputs=[photo, session_state],
            outputs=outputs,
        ).then(
            fn=run_analysis,
            inputs=[session_state],
            outputs=outputs,
        )

        # Run -> generation
        run_btn.click(
            fn=begin_generation,
            inputs=[session_state],
            outputs=outputs,
        ).then(
            fn=run_generation,
            inputs=[session_state],
            outputs=outputs,
        )

        # Delete
        delete_btn.click(
            fn=handle_reset,
            inputs=[session_state],
            outputs=outputs,
        )

    return app, CUSTOM_CSS


def main():
    """Main entry point for the application."""
    logger.info("Starting Portrait Studio...")
    logger.info(f"Analysis model: {config.analysis_model}, image model: {config.image_model}")
    if not config.has_api_key:
        logger.warning("No API key configured; set GEMINI_API_KEY before uploading.")

    app, custom_css = create_ui()

    logger.info(f"Launching Gradio UI on {config.gradio_server_name}:{config.gradio_server_port}")

    app.launch(
        server_name=config.gradio_server_name,
        server_port=config.gradio_server_port,
        share=config.gradio_share,
        show_error=True,
        inbrowser=False,
        css=custom_css,
    )


if __name__ == "__main__":
    main()
