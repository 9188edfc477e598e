# app_streamlit.py
# Streamlit UI for repairing corrupted PHP serialize() output (dark UI)
import streamlit as st
import time
from serfix import fix, fix_traced, DEFAULT_MAX_DEPTH

st.set_page_config(page_title="PHP Serialization Fixer", layout="wide")
st.markdown(
    """
    <style>
    .stApp { background-color: #0b0f14; color: #e6eef6; }
    .big-box { background: #0f1720; padding: 18px; border-radius: 10px; border: 1px solid rgba(255,255,255,0.03); }
    .panel-title { font-weight:700; color: #dbeafe; margin-bottom:6px; }
    .muted { color: #9fb0c9; }
    .stat { background:#071124; padding:12px; border-radius:8px; text-align:center; }
    </style>
    """, unsafe_allow_html=True
)

st.title("PHP Serialization Fixer — repair broken serialize() strings")
col_left, col_right = st.columns([1,1])

EXAMPLES = {
    "Truncated array": 'a:3:{i:0;s:5:"apple";i:1;s:6:"banana";i:2;s:6:"cher',
    "Re-encoded string": 's:11:"Tâhâ Yacine";',
    "Wrong element count": 'a:5:{s:2:"id";i:1;s:4:"name";s:5:"Alice";}',
    "Garbage value": 'a:2:{i:0;s:4:"fish";i:1;X:not a type tag}',
    "Object": 'O:8:"stdClass":2:{s:4:"city";s:8:"New York";s:3:"age";i:30;}',
}

with st.sidebar:
    st.markdown("### Options")
    example_name = st.selectbox("Example", list(EXAMPLES.keys()), index=0)
    max_depth = st.number_input("Max nesting depth", min_value=1, max_value=512, value=DEFAULT_MAX_DEPTH, step=1)
    show_leftover = st.checkbox("Show discarded bytes", value=True)
    strip_input = st.checkbox("Strip surrounding whitespace", value=True)

with col_left:
    st.markdown('<div class="big-box"><div class="panel-title">Serialized Input</div>', unsafe_allow_html=True)
    raw_text = st.text_area("Paste serialized text here", height=360, value=EXAMPLES[example_name], key="serial_input")
    st.markdown("</div>", unsafe_allow_html=True)

with col_right:
    st.markdown('<div class="big-box"><div class="panel-title">Repaired Output</div>', unsafe_allow_html=True)
    text = raw_text.strip() if strip_input else raw_text

    if not text:
        st.info("No input provided. Pick an example or paste serialized text.")
    else:
        t0 = time.time()
        fixed, trace = fix_traced(text, max_depth=int(max_depth))
        t1 = time.time()
        fix_time = t1 - t0

        if fixed == text:
            st.success("Input is already a valid serialization; nothing changed.")
        else:
            st.warning("Input was corrupted and has been repaired.")

        st.text_area("Repaired", value=fixed, height=360, key="serial_output")
        fixed_bytes = fixed.encode("utf-8", "surrogateescape")
        st.download_button("Download repaired (.txt)", data=fixed_bytes, file_name="repaired.txt", mime="text/plain")

        in_size = len(text.encode("utf-8", "surrogateescape"))
        out_size = len(fixed_bytes)
        leftover = trace.leftover or ""
        leftover_size = len(leftover.encode("utf-8", "surrogateescape"))

        st.markdown("</div>", unsafe_allow_html=True)
        st.markdown("<div style='margin-top:12px; display:flex; gap:12px;'>", unsafe_allow_html=True)
        c1, c2, c3 = st.columns([1,1,1])
        c1.markdown(f"<div class='stat'><div style='font-size:20px; font-weight:700'>{in_size}</div><div class='muted'>Input bytes</div></div>", unsafe_allow_html=True)
        c2.markdown(f"<div class='stat'><div style='font-size:20px; font-weight:700'>{out_size}</div><div class='muted'>Output bytes</div></div>", unsafe_allow_html=True)
        c3.markdown(f"<div class='stat'><div style='font-size:20px; font-weight:700'>{leftover_size}</div><div class='muted'>Discarded bytes</div></div>", unsafe_allow_html=True)
        st.markdown("</div>", unsafe_allow_html=True)

        if show_leftover and leftover:
            st.markdown("**Discarded after the first element:**")
            st.code(leftover)

        with st.expander("Technical details (timings & stability)"):
            st.write(f"Input bytes: {in_size}")
            st.write(f"Output bytes: {out_size}")
            st.write(f"Discarded bytes: {leftover_size}")
            st.write(f"Fix time: {fix_time:.4f}s")
            st.write(f"Re-fixing the output is stable: {fix(fixed, max_depth=int(max_depth)) == fixed}")
            st.write("Lengths are counted on the UTF-8 bytes of the text, the way PHP counts them.")

st.markdown("---")
st.markdown("Prototype built for portfolio. Do not store sensitive data without consent.")
