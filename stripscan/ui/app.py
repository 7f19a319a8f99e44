"""
StripScan Dashboard - Streamlit Application.

Upload a photo of a monitor strip (or capture one with the camera) and get a
heart-rate estimate, a rhythm label and the supporting findings.

Usage:
    streamlit run stripscan/ui/app.py
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional
import logging

import streamlit as st

# Add repository root to path
repo_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(repo_root))

from stripscan import __version__
from stripscan.analysis import AnalysisReport, StripAnalyzer
from stripscan.data.loader import ImageDecodeError
from stripscan.gateway import GatewaySettings, ReferenceGateway, create_gateway
from stripscan.ui.plots import (
    create_gradient_heatmap,
    create_heart_rate_gauge,
    create_intensity_image,
    get_result_status,
    get_status_color,
    get_status_emoji,
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# ============================================================================
# Caching and State Management
# ============================================================================

@st.cache_resource
def load_gateway() -> ReferenceGateway:
    """Create and cache the reference gateway from the environment."""
    return create_gateway(GatewaySettings.from_env())


def get_analyzer() -> StripAnalyzer:
    """Get analyzer instance bound to the cached gateway."""
    settings = GatewaySettings.from_env()
    return StripAnalyzer(gateway=load_gateway(), timeout=settings.timeout_seconds)


# ============================================================================
# UI Components
# ============================================================================

def render_sidebar(gateway: ReferenceGateway) -> str:
    """Render the sidebar and return the chosen input mode."""
    st.sidebar.title("📷 Input")
    st.sidebar.markdown("---")

    mode = st.sidebar.radio("Image source", options=["Upload", "Camera"])

    st.sidebar.markdown("---")
    st.sidebar.subheader("⚙️ Reference data")
    if gateway.enabled:
        st.sidebar.success(f"Connected: {type(gateway).__name__}")
    else:
        st.sidebar.info("No reference store configured; using fixed thresholds.")

    st.sidebar.markdown("---")
    st.sidebar.caption(f"StripScan {__version__}")
    st.sidebar.caption("Heuristic estimate. Not a medical device.")

    return mode


def read_image(mode: str) -> Optional[bytes]:
    """Show the selected input widget and return the image bytes, if any."""
    if mode == "Camera":
        captured = st.camera_input("Capture the monitor strip")
        return captured.getvalue() if captured is not None else None

    uploaded = st.file_uploader("Upload a strip image", type=["png", "jpg", "jpeg", "bmp", "gif", "webp"])
    return uploaded.getvalue() if uploaded is not None else None


def render_report(report: AnalysisReport) -> None:
    """Render the analysis result with figures and details."""
    result = report.result
    status = get_result_status(result)
    emoji = get_status_emoji(status)
    color = get_status_color(status)

    st.markdown(
        f"""
        <div style="background-color: {color}; padding: 15px; border-radius: 10px; margin-bottom: 20px;">
            <h2 style="color: white; margin: 0;">{emoji} {result.rhythm_type.capitalize()}</h2>
            <p style="color: white; margin: 5px 0 0 0;">{result.heart_rate} bpm | confidence: {result.confidence:.1%}</p>
        </div>
        """,
        unsafe_allow_html=True
    )

    if report.degraded:
        st.warning("Reference data was unavailable; the reading uses fixed thresholds only.")

    col1, col2 = st.columns([2, 1])

    with col1:
        st.subheader("📊 Detected edges")
        st.plotly_chart(
            create_gradient_heatmap(report.gradient, threshold=report.heart_rate.threshold),
            use_container_width=True
        )

    with col2:
        st.plotly_chart(
            create_heart_rate_gauge(result.heart_rate, confidence=result.confidence),
            use_container_width=True
        )

        st.subheader("🔍 Findings")
        if result.abnormalities:
            for finding in result.abnormalities:
                if status == 3:
                    st.error(f"• {finding}")
                else:
                    st.warning(f"• {finding}")
        else:
            st.success("No abnormalities detected")

    with st.expander("🔧 Technical details"):
        col_a, col_b, col_c = st.columns(3)

        with col_a:
            st.metric("Peak cells", report.heart_rate.peak_count)
            st.metric("Raw estimate", f"{report.heart_rate.raw_estimate} bpm")

        with col_b:
            st.metric("Gradient variance", f"{report.rhythm.variance:.4f}")
            st.metric("Similar reference cases", report.rhythm.similar_cases)

        with col_c:
            st.metric("Reference records", report.reference_count)
            st.metric("History records", report.history_count)

        st.plotly_chart(create_intensity_image(report.grid), use_container_width=True)
        st.json(result.to_dict())


# ============================================================================
# Main Application
# ============================================================================

def main():
    """Main Streamlit application."""
    st.set_page_config(
        page_title="StripScan - Strip Image Analysis",
        page_icon="🫀",
        layout="wide",
        initial_sidebar_state="expanded"
    )

    st.title("🫀 StripScan")
    st.markdown("Heart-rate and rhythm estimate from a photo of an ECG/CTG strip")
    st.markdown("---")

    gateway = load_gateway()
    mode = render_sidebar(gateway)

    image_bytes = read_image(mode)
    if image_bytes is None:
        st.info("Upload an image or capture one with the camera to start.")
        return

    with st.spinner("Analyzing image..."):
        try:
            report = get_analyzer().analyze_detailed(image_bytes)
        except ImageDecodeError as e:
            st.error(f"Could not read the image: {e}")
            return
        except Exception as e:
            st.error(f"Analysis failed: {e}")
            logger.exception("Pipeline error")
            return

    render_report(report)


if __name__ == "__main__":
    main()
