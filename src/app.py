import io
import sys
from dataclasses import asdict
from pathlib import Path

import numpy as np
import streamlit as st
from PIL import Image

# Ensure 'src' is on sys.path so 'boxshrink' imports when run via Streamlit
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from boxshrink.params import IMAGE_FORMATS, MAXSHRINK, UNSET, ShrinkBounds, ShrinkParams  # noqa: E402
from boxshrink.pipeline import shrink_with_params  # noqa: E402
from boxshrink.preset_management import (  # noqa: E402
    get_available_presets,
    load_preset,
    save_preset,
)

st.set_page_config(page_title="Box Shrink Preview", layout="wide")

if "params" not in st.session_state:
    st.session_state.params = asdict(ShrinkParams())


@st.cache_data(show_spinner=False)
def compute_shrink(image_bytes: bytes, params_dict: dict):
    params = ShrinkParams.from_dict(params_dict)
    out = io.BytesIO()
    result = shrink_with_params(io.BytesIO(image_bytes), out, params)
    return result.ok, result.message, out.getvalue()


st.title("Box Shrink Preview")
st.caption("Integer-factor box-filter reduction, one scanline at a time.")

uploaded = st.file_uploader("Upload an image (JPG/PNG)", type=["jpg", "jpeg", "png"])

with st.sidebar:
    st.header("Presets")
    preset_to_load = st.selectbox("Select Preset", options=["None"] + get_available_presets(), index=0)
    if st.button("Load Preset") and preset_to_load != "None":
        loaded = load_preset(preset_to_load)
        if loaded:
            st.session_state.params = asdict(loaded)
            st.success(f"Loaded preset '{preset_to_load}'")

    p = st.session_state.params

    st.header("Shrink")
    sval = int(st.slider("Reduction factor", 1, MAXSHRINK, int(p["sval"])))
    quality = int(st.slider("Quality", 0, 100, int(p["quality"])))
    image_format = st.selectbox(
        "Format", IMAGE_FORMATS, index=IMAGE_FORMATS.index(p["image_format"])
    )

    st.header("Output bounds (-1 = unset)")
    bounds = {
        name: int(st.number_input(name, min_value=UNSET, value=int(p["bounds"][name]), step=1))
        for name in ("max_long", "max_short", "max_width", "max_height", "max_pixels")
    }

    params = ShrinkParams(
        sval=sval,
        quality=quality,
        image_format=image_format,
        bounds=ShrinkBounds(**bounds),
    )
    st.session_state.params = asdict(params)

    preset_name_to_save = st.text_input("Save as preset name")
    if st.button("Save Preset"):
        if preset_name_to_save:
            save_preset(preset_name_to_save, params)
            st.success(f"Saved preset '{preset_name_to_save}'")
            st.rerun()
        else:
            st.warning("Please enter a name for the preset.")

if uploaded is None:
    st.info("Upload an image to begin.")
    st.stop()

image_bytes = uploaded.read()
ok, message, out_bytes = compute_shrink(image_bytes, asdict(params))

col1, col2 = st.columns(2)
with col1:
    src = Image.open(io.BytesIO(image_bytes))
    st.subheader(f"Input ({src.size[0]}×{src.size[1]})")
    st.image(np.array(src), use_column_width=True)
with col2:
    if not ok:
        st.error(message)
    else:
        dst = Image.open(io.BytesIO(out_bytes))
        st.subheader(f"Shrunk ({dst.size[0]}×{dst.size[1]})")
        st.image(np.array(dst), use_column_width=True)
        ext = "jpg" if image_format == "jpeg" else "png"
        st.download_button(
            "⬇️ Download result",
            out_bytes,
            file_name=f"shrunk.{ext}",
            mime=f"image/{image_format}",
        )
