"""
Visualization Module for Diauxic Shift Expression Toolkit

Functions for plotting expression time courses, clustering diagnostics and
agreement between clusterings. Every function returns the Figure so the
caller decides whether to display or save it.
"""

import pandas as pd
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
import seaborn as sns
from scipy.cluster.hierarchy import dendrogram
from typing import Optional, Tuple


def plot_expression_profiles(
    long_df: pd.DataFrame,
    id_column: str = "ORF",
    delta: Optional[float] = None,
    figsize: Tuple[int, int] = (12, 6),
    title: str = "Filtered Gene Expression Profiles",
) -> Figure:
    """
    Line plot of every gene's log ratio over time.

    Parameters:
    -----------
    long_df : pd.DataFrame
        Long-form records with columns id_column, time, value
    id_column : str
        Column identifying genes
    delta : float, optional
        Filter threshold; drawn as dashed lines at +/- delta
    figsize : Tuple[int, int]
        Figure size (width, height)
    title : str
        Plot title
    """

    fig, ax = plt.subplots(figsize=figsize)

    n_genes = long_df[id_column].nunique()
    sns.lineplot(
        data=long_df,
        x="time",
        y="value",
        units=id_column,
        estimator=None,
        color="#1f4e79",
        alpha=0.3,
        linewidth=1,
        ax=ax,
    )

    mean_profile = long_df.groupby("time")["value"].mean()
    ax.plot(mean_profile.index, mean_profile.values, color="black", linewidth=3,
            label=f"Mean (n={n_genes})")

    if delta is not None:
        ax.axhline(y=delta, color="red", linestyle="--", alpha=0.6, label=f"±{delta}")
        ax.axhline(y=-delta, color="red", linestyle="--", alpha=0.6)

    ax.axhline(y=0, color="gray", linestyle=":", alpha=0.5)
    ax.set_xlabel("Time", fontsize=12)
    ax.set_ylabel("Log Ratio", fontsize=12)
    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.legend(loc="upper left", fontsize=10)
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    return fig


def plot_cluster_profiles(
    matrix: pd.DataFrame,
    labels: pd.Series,
    time_points: Optional[list] = None,
    title: str = "Expression Profiles by Cluster",
    alpha: float = 0.4,
) -> Figure:
    """
    One panel per cluster with member trajectories and the cluster mean.
    """

    if time_points is None:
        time_points = list(range(matrix.shape[1]))

    clusters = sorted(labels.unique())
    n_clusters = len(clusters)
    n_cols = 2
    n_rows = (n_clusters + n_cols - 1) // n_cols

    fig, axes = plt.subplots(n_rows, n_cols, figsize=(14, max(4 * n_rows, 6)), squeeze=False)
    axes = axes.flatten()

    aligned = labels.reindex(matrix.index)
    X = matrix.to_numpy(dtype=float)
    y_max = np.nanmax(np.abs(X)) * 1.1 if X.size else 1.0

    for idx, cluster in enumerate(clusters):
        ax = axes[idx]
        mask = (aligned == cluster).to_numpy()
        n_members = int(mask.sum())

        for row in X[mask]:
            ax.plot(time_points, row, color="#1f4e79", alpha=alpha, linewidth=1.5)

        cluster_mean = X[mask].mean(axis=0)
        ax.plot(time_points, cluster_mean, color="black", linewidth=4, label=f"Mean (n={n_members})")
        ax.plot(time_points, cluster_mean, color="orange", linewidth=2.5, linestyle="--")

        ax.axhline(y=0, color="gray", linestyle=":", alpha=0.5)
        ax.set_xlabel("Time", fontsize=12)
        ax.set_ylabel("Log Ratio", fontsize=12)
        ax.set_title(f"Cluster {cluster}\n(n={n_members} genes)", fontsize=12, fontweight="bold")
        ax.set_ylim(-y_max, y_max)
        ax.legend(loc="upper left", fontsize=10)
        ax.grid(True, alpha=0.3)

    for idx in range(n_clusters, len(axes)):
        axes[idx].set_visible(False)

    plt.suptitle(title, fontsize=14, fontweight="bold", y=1.02)
    plt.tight_layout()
    return fig


def plot_elbow_curve(
    elbow_df: pd.DataFrame,
    selected_k: Optional[int] = None,
    figsize: Tuple[int, int] = (14, 5),
) -> Figure:
    """
    Within-cluster sum of squares and silhouette score against k.

    Parameters:
    -----------
    elbow_df : pd.DataFrame
        Output of compute_elbow_curve() (columns k, wcss, silhouette)
    selected_k : int, optional
        k used for the main run, marked with a vertical line
    """

    fig, axes = plt.subplots(1, 2, figsize=figsize)
    k_values = elbow_df["k"].tolist()

    axes[0].plot(k_values, elbow_df["wcss"], "b-o", linewidth=2, markersize=8)
    axes[0].set_xlabel("Number of Clusters (k)", fontsize=12)
    axes[0].set_ylabel("Within-cluster Sum of Squares", fontsize=12)
    axes[0].set_title("Elbow Method", fontsize=14, fontweight="bold")
    axes[0].set_xticks(k_values)
    axes[0].grid(True, alpha=0.3)

    sil = elbow_df.dropna(subset=["silhouette"])
    axes[1].plot(sil["k"], sil["silhouette"], "g-o", linewidth=2, markersize=8)
    axes[1].set_xlabel("Number of Clusters (k)", fontsize=12)
    axes[1].set_ylabel("Silhouette Score", fontsize=12)
    axes[1].set_title("Silhouette Analysis", fontsize=14, fontweight="bold")
    axes[1].set_xticks(k_values)
    axes[1].grid(True, alpha=0.3)

    if selected_k is not None:
        for ax in axes:
            ax.axvline(x=selected_k, color="red", linestyle="--", linewidth=2,
                       label=f"Selected: k={selected_k}")
            ax.legend(fontsize=10)

    plt.tight_layout()
    return fig


def plot_restart_sse_distribution(
    restarts: pd.DataFrame,
    bins: int = 50,
    figsize: Tuple[int, int] = (10, 6),
    title: str = "Within-cluster SS over Random Lloyd Restarts",
) -> Figure:
    """Histogram of the final WCSS reached by each restart, best value marked."""

    fig, ax = plt.subplots(figsize=figsize)

    sns.histplot(restarts["wcss"], bins=bins, color="#377eb8", ax=ax)
    best = restarts["wcss"].min()
    n_best = int(np.isclose(restarts["wcss"], best).sum())
    ax.axvline(x=best, color="red", linestyle="--", linewidth=2,
               label=f"Best: {best:.2f} ({n_best}/{len(restarts)} runs)")

    ax.set_xlabel("Within-cluster Sum of Squares", fontsize=12)
    ax.set_ylabel("Number of Runs", fontsize=12)
    ax.set_title(title, fontsize=14, fontweight="bold")
    ax.legend(fontsize=10)
    ax.grid(True, alpha=0.3, axis="y")

    plt.tight_layout()
    return fig


def plot_dendrogram(
    Z: np.ndarray,
    labels: Optional[list] = None,
    n_clusters: Optional[int] = None,
    figsize: Tuple[int, int] = (16, 6),
    title: str = "Hierarchical Clustering (average linkage)",
) -> Figure:
    """
    Dendrogram of a linkage matrix; the cut for n_clusters is drawn if given.
    """

    fig, ax = plt.subplots(figsize=figsize)

    color_threshold = None
    if n_clusters is not None and 1 < n_clusters <= len(Z):
        # Height midway between the merges that leave n_clusters and n_clusters - 1 groups
        color_threshold = (Z[-n_clusters, 2] + Z[-(n_clusters - 1), 2]) / 2

    show_labels = labels is not None and len(labels) <= 60
    dendrogram(
        Z,
        labels=labels if show_labels else None,
        no_labels=not show_labels,
        color_threshold=color_threshold,
        ax=ax,
    )

    if color_threshold is not None:
        ax.axhline(y=color_threshold, color="red", linestyle="--", linewidth=1.5,
                   label=f"Cut: {n_clusters} clusters")
        ax.legend(fontsize=10)

    ax.set_ylabel("Distance", fontsize=12)
    ax.set_title(title, fontsize=14, fontweight="bold")

    plt.tight_layout()
    return fig


def plot_agreement_heatmap(
    agreement: pd.DataFrame,
    figsize: Tuple[int, int] = (7, 6),
    title: str = "Clustering Agreement (Rand Index)",
) -> Figure:
    """Annotated heatmap of a square agreement matrix."""

    fig, ax = plt.subplots(figsize=figsize)
    sns.heatmap(
        agreement,
        annot=True,
        fmt=".3f",
        cmap="viridis",
        vmin=0,
        vmax=1,
        square=True,
        cbar_kws={"label": "Rand Index"},
        ax=ax,
    )
    ax.set_title(title, fontsize=14, fontweight="bold")

    plt.tight_layout()
    return fig
