"""Streamlit UI for inspecting the obstacle pipeline on a single depth frame"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import streamlit as st

from obstacles_depth.config import ObstaclesDepthConfig
from obstacles_depth.data_loader import load_depth_map
from obstacles_depth.errors import ObstaclesDepthError
from obstacles_depth.models import CameraIntrinsics, DepthMap
from obstacles_depth.pipeline import FrameResult, MODE_MEDIAN_DEPTH, run_frame_pipeline
from obstacles_depth.synthetic import floor_with_box
from obstacles_depth.visualizations import (
    bev_obstacles,
    depth_heatmap,
    scatter_2d,
    scatter_3d_clusters,
    scatter_3d_ground_obstacle,
)

SYNTHETIC = "Synthetic floor + box"
FROM_FILE = "Depth file (.npy / .txt)"


def get_config_from_sidebar() -> ObstaclesDepthConfig:
    """Render parameter controls in sidebar and return the service attributes."""
    with st.popover("Ground plane", use_container_width=True):
        min_points_in_plane = st.slider(
            "Min points in plane (higher = needs more visible floor)",
            1, 5000, 100,
        )
        max_dist = st.slider(
            "Max distance from plane, mm (larger = thicker ground layer)",
            1.0, 500.0, 50.0, 1.0,
        )
        angle_tol = st.slider(
            "Angle tolerance, degrees (larger = allows tilted floors)",
            0.0, 90.0, 30.0, 1.0,
        )

    with st.popover("Clustering", use_container_width=True):
        radius = st.slider(
            "Clustering radius, mm (larger = merges nearby objects)",
            1, 500, 50,
        )
        strictness = st.slider(
            "Strictness (lower = requires tighter proximity)",
            0.05, 1.0, 1.0, 0.05,
        )
        min_segment = st.slider(
            "Min points per obstacle (higher = ignores small groups)",
            1, 500, 20,
        )

    return ObstaclesDepthConfig(
        min_points_in_plane=min_points_in_plane,
        min_points_in_segment=min_segment,
        max_dist_from_plane_mm=max_dist,
        clustering_radius=radius,
        clustering_strictness=strictness,
        ground_angle_tolerance_degs=angle_tol,
    )


def get_intrinsics_from_sidebar(default: CameraIntrinsics, width: int, height: int):
    """Optional intrinsics; unchecked means the median depth fallback runs."""
    if not st.checkbox("Camera intrinsics available", value=True):
        return None
    col1, col2 = st.columns(2)
    fx = col1.number_input("fx", value=float(default.fx))
    fy = col2.number_input("fy", value=float(default.fy))
    cx = col1.number_input("cx", value=float(default.cx))
    cy = col2.number_input("cy", value=float(default.cy))
    return CameraIntrinsics(fx=fx, fy=fy, cx=cx, cy=cy, width=width, height=height)


def load_input():
    """Return the depth map and default intrinsics for the selected source."""
    source = st.selectbox("Depth source", [SYNTHETIC, FROM_FILE])

    if source == SYNTHETIC:
        box_cols = st.slider("Box width (px)", 1, 30, 10)
        box_rows = st.slider("Box height (px)", 1, 10, 5)
        return floor_with_box(cols=box_cols, rows=box_rows)

    path = st.text_input("Path", value="data/depth.npy")
    file_path = Path(path)
    if not file_path.exists():
        st.warning(f"File not found: {file_path}")
        return None, None
    depth_map = load_depth_map(file_path)
    default = CameraIntrinsics(
        fx=500.0, fy=500.0,
        cx=(depth_map.width - 1) / 2.0, cy=(depth_map.height - 1) / 2.0,
    )
    return depth_map, default


# =============================================================================
# Tabs
# =============================================================================

def render_depth_tab(depth_map: DepthMap, r: FrameResult):
    """Render depth input tab content."""
    st.caption(
        f"Frame: **{depth_map.width}x{depth_map.height}** | "
        f"Valid cells: **{r.valid_count:,}** | "
        f"Mode: **{r.mode}**"
    )
    st.plotly_chart(depth_heatmap(depth_map), use_container_width=True)


def render_ground_tab(r: FrameResult):
    """Render ground segmentation tab content."""
    if r.plane_model is None:
        st.info("No ground plane for this frame.")
        return

    st.caption(f"Plane: `{r.plane_model.equation_string}`")
    view = st.radio("View", ["3D", "Side View (Z vs Y)"], horizontal=True)

    ground = r.ground_points
    obstacle = r.obstacle_points
    if view == "3D":
        fig = scatter_3d_ground_obstacle(ground, obstacle)
    else:
        fig = scatter_2d(
            [ground, obstacle],
            [f"Ground ({len(ground):,})", f"Non-ground ({len(obstacle):,})"],
            ["blue", "red"],
            "Ground vs Non-ground - Side View",
            "Z (mm)", "Y (mm)",
            x_idx=2, y_idx=1,
        )
        fig.update_yaxes(autorange="reversed")
    st.plotly_chart(fig, use_container_width=True)


def render_clusters_tab(r: FrameResult):
    """Render clusters tab content."""
    st.caption(
        f"Obstacles: **{len(r.obstacles)}** | "
        f"Sizes: **{r.cluster_sizes}** | "
        f"Noise: **{r.noise_count:,}** pts"
    )
    fig = scatter_3d_clusters(r.obstacle_points, r.cluster_labels, r.obstacles)
    st.plotly_chart(fig, use_container_width=True)


def render_bev_tab(r: FrameResult):
    """Render bird's eye view tab content."""
    fig = bev_obstacles(r.obstacles, r.obstacle_points)
    st.plotly_chart(fig, use_container_width=True)

    rows = [
        {
            "id": o.cluster_id,
            "points": o.num_points,
            "x": round(o.center.x, 1),
            "y": round(o.center.y, 1),
            "z": round(o.center.z, 1),
            "dims": tuple(round(float(v), 1) for v in o.bounding_box.dims),
        }
        for o in r.obstacles
    ]
    st.dataframe(rows, use_container_width=True)


# =============================================================================
# Main
# =============================================================================

def main():
    st.set_page_config(page_title="Obstacles Depth", layout="wide")
    st.title("Obstacles Depth")

    with st.sidebar:
        st.header("Input")
        depth_map, default_intrinsics = load_input()
        if depth_map is None:
            return
        intrinsics = get_intrinsics_from_sidebar(default_intrinsics, depth_map.width, depth_map.height)

        st.header("Parameters")
        config = get_config_from_sidebar()

        run_button = st.button("Run Frame", type="primary", use_container_width=True)

    if run_button:
        try:
            cluster_config = config.to_cluster_config()
            with st.spinner("Running pipeline..."):
                result = run_frame_pipeline(depth_map, cluster_config, intrinsics)
        except ObstaclesDepthError as err:
            st.error(f"{type(err).__name__}: {err}")
            return
        st.session_state["frame"] = (depth_map, result)

    if "frame" not in st.session_state:
        st.info("Configure parameters in the sidebar and click **Run Frame** to begin.")
        return

    depth_map, r = st.session_state["frame"]

    if r.mode == MODE_MEDIAN_DEPTH:
        st.warning("No intrinsics: reporting a single point at the median depth.")

    tab_depth, tab_ground, tab_cluster, tab_bev = st.tabs(
        ["Depth", "Ground Segmentation", "Clusters", "Bird's Eye"]
    )

    with tab_depth:
        render_depth_tab(depth_map, r)
    with tab_ground:
        render_ground_tab(r)
    with tab_cluster:
        render_clusters_tab(r)
    with tab_bev:
        render_bev_tab(r)


if __name__ == "__main__":
    main()
