"""Plotly figures for inspecting depth frames, ground removal and obstacles"""

import numpy as np
import plotly.graph_objects as go

from obstacles_depth.models import DepthMap, Obstacle

CLUSTER_COLORS = [
    "#e6194b", "#3cb44b", "#ffe119", "#4363d8", "#f58231",
    "#911eb4", "#42d4f4", "#f032e6", "#bfef45", "#fabed4",
    "#469990", "#dcbeff", "#9A6324", "#800000", "#aaffc3",
    "#808000", "#ffd8b1", "#000075", "#a9a9a9", "#ffffff",
]


def depth_heatmap(depth_map: DepthMap, title: str = "Depth (mm)"):
    """Depth image with invalid cells left blank."""
    data = np.where(depth_map.valid_mask(), depth_map.data, np.nan)
    fig = go.Figure(go.Heatmap(z=data, colorscale="Viridis", colorbar=dict(title="mm")))
    fig.update_layout(
        title=title,
        yaxis=dict(autorange="reversed", scaleanchor="x"),
        height=450,
        margin=dict(l=40, r=20, t=40, b=40),
    )
    return fig


def scatter_2d(points_list, names, colors, title, xlabel, ylabel, x_idx=0, y_idx=2):
    """Create a 2D scatter plot with multiple point sets."""
    fig = go.Figure()
    for pts, name, color in zip(points_list, names, colors):
        if len(pts) > 0:
            fig.add_trace(go.Scattergl(
                x=pts[:, x_idx], y=pts[:, y_idx],
                mode="markers",
                marker=dict(size=3, color=color, opacity=0.6),
                name=name,
            ))
    fig.update_layout(
        title=title,
        xaxis=dict(title=xlabel, scaleanchor="y"),
        yaxis=dict(title=ylabel),
        height=550,
        margin=dict(l=40, r=20, t=40, b=40),
    )
    return fig


def scatter_3d_ground_obstacle(ground, obstacle):
    """Create a 3D scatter plot showing ground vs obstacle points."""
    fig = go.Figure()
    if len(ground) > 0:
        fig.add_trace(go.Scatter3d(
            x=ground[:, 0], y=ground[:, 2], z=-ground[:, 1],
            mode="markers",
            marker=dict(size=1, color="blue", opacity=0.4),
            name=f"Ground ({len(ground):,})",
        ))
    if len(obstacle) > 0:
        fig.add_trace(go.Scatter3d(
            x=obstacle[:, 0], y=obstacle[:, 2], z=-obstacle[:, 1],
            mode="markers",
            marker=dict(size=2, color="red", opacity=0.6),
            name=f"Non-ground ({len(obstacle):,})",
        ))
    fig.update_layout(
        scene=dict(aspectmode="data", xaxis_title="X (mm)", yaxis_title="Z (mm)", zaxis_title="-Y (mm)"),
        height=600,
        margin=dict(l=0, r=0, t=30, b=0),
    )
    return fig


def _box_edges(obstacle: Obstacle):
    """Line segments of an obstacle's bounding box, separated by None."""
    b = obstacle.bounding_box
    xs, ys, zs = [], [], []
    corners = [
        (x, y, z)
        for x in (b.min_x, b.max_x)
        for y in (b.min_y, b.max_y)
        for z in (b.min_z, b.max_z)
    ]
    # Flat boxes collapse onto fewer corners
    corners = list(dict.fromkeys(corners))
    for i, p in enumerate(corners):
        for q in corners[i + 1:]:
            # Edges differ in exactly one coordinate
            if sum(a != c for a, c in zip(p, q)) == 1:
                xs += [p[0], q[0], None]
                ys += [p[2], q[2], None]
                zs += [-p[1], -q[1], None]
    return xs, ys, zs


def scatter_3d_clusters(obstacle_points, labels, obstacles=()):
    """Create a 3D scatter plot with colored clusters and their boxes."""
    fig = go.Figure()
    unique = np.unique(labels)
    for label in unique:
        mask = labels == label
        pts = obstacle_points[mask]
        if label == -1:
            fig.add_trace(go.Scatter3d(
                x=pts[:, 0], y=pts[:, 2], z=-pts[:, 1],
                mode="markers",
                marker=dict(size=1, color="gray", opacity=0.2),
                name=f"Noise ({len(pts):,})",
            ))
        else:
            color = CLUSTER_COLORS[label % len(CLUSTER_COLORS)]
            fig.add_trace(go.Scatter3d(
                x=pts[:, 0], y=pts[:, 2], z=-pts[:, 1],
                mode="markers",
                marker=dict(size=2, color=color, opacity=0.7),
                name=f"Cluster {label} ({len(pts):,})",
            ))

    for obstacle in obstacles:
        color = CLUSTER_COLORS[obstacle.cluster_id % len(CLUSTER_COLORS)]
        xs, ys, zs = _box_edges(obstacle)
        fig.add_trace(go.Scatter3d(
            x=xs, y=ys, z=zs,
            mode="lines",
            line=dict(color=color, width=3),
            name=f"Obstacle {obstacle.cluster_id}",
            showlegend=False,
        ))

    fig.update_layout(
        scene=dict(aspectmode="data", xaxis_title="X (mm)", yaxis_title="Z (mm)", zaxis_title="-Y (mm)"),
        height=600,
        margin=dict(l=0, r=0, t=30, b=0),
    )
    return fig


def bev_obstacles(obstacles, obstacle_points=None):
    """
    Bird's eye view of obstacles in front of the camera.

    Camera frame: X = right, Y = down, Z = forward.
    We plot: horizontal = X (left-right), vertical = Z (forward)
    """
    fig = go.Figure()

    if obstacle_points is not None and len(obstacle_points) > 0:
        fig.add_trace(go.Scattergl(
            x=obstacle_points[:, 0],
            y=obstacle_points[:, 2],
            mode="markers",
            marker=dict(size=2, color="#666666", opacity=0.5),
            name="Points",
            hoverinfo="skip",
        ))

    # Camera at the origin
    fig.add_trace(go.Scatter(
        x=[0], y=[0],
        mode="markers",
        marker=dict(symbol="triangle-up", size=14, color="rgb(0, 150, 255)"),
        name="Camera",
        showlegend=False,
        hoverinfo="skip",
    ))

    for obstacle in obstacles:
        bbox = obstacle.bounding_box
        color = CLUSTER_COLORS[obstacle.cluster_id % len(CLUSTER_COLORS)]
        fig.add_trace(go.Scatter(
            x=[bbox.min_x, bbox.max_x, bbox.max_x, bbox.min_x, bbox.min_x],
            y=[bbox.min_z, bbox.min_z, bbox.max_z, bbox.max_z, bbox.min_z],
            mode="lines+markers" if bbox.dims == (0.0, 0.0, 0.0) else "lines",
            line=dict(color=color, width=2),
            fill="toself",
            name=f"Obstacle {obstacle.cluster_id}",
            showlegend=False,
            hovertemplate=f"Obstacle {obstacle.cluster_id}: {obstacle.num_points} pts<extra></extra>",
        ))

    fig.update_layout(
        xaxis=dict(title="← Left (mm)    Right (mm) →", zeroline=True),
        yaxis=dict(title="Forward (mm) →", scaleanchor="x", zeroline=True),
        height=650,
        margin=dict(l=50, r=20, t=20, b=50),
        showlegend=False,
    )

    return fig
