"""
Clustering Module

K-means and hierarchical clustering of filtered expression profiles:

- K-means with a fixed number of clusters, iteration cap and seed
- Elbow diagnostics (within-cluster sum of squares for k = 1..10)
- Repeated single-start Lloyd runs to show sensitivity to initial centers
- Average-linkage hierarchical clustering under Euclidean and correlation
  distances, cut at a fixed number of clusters

Every method returns a pandas Series of 1-based integer labels indexed by
gene identifier, in the row order of the input matrix.

Author: MacCoss Lab
Version: 1.0.0
"""

import numpy as np
import pandas as pd
from sklearn.cluster import KMeans
from sklearn.exceptions import ConvergenceWarning
from sklearn.metrics import silhouette_score
from scipy.cluster.hierarchy import linkage, fcluster
from scipy.spatial.distance import pdist
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union
import warnings

from .validation import ClusteringError, validate_numeric_matrix


SUPPORTED_METRICS = ("euclidean", "correlation")


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class ClusteringConfig:
    """Configuration for the clustering stage."""

    # K-means settings
    n_clusters: int = 6
    max_iter: int = 100
    n_init: int = 10
    random_seed: int = 42
    init: Union[str, np.ndarray] = "k-means++"
    fail_on_max_iter: bool = True  # Raise if max_iter stops a run before a fixed point

    # Elbow diagnostics
    elbow_k_range: Tuple[int, int] = (1, 10)

    # Lloyd restart diagnostic
    n_restarts: int = 1000

    # Hierarchical clustering
    linkage_method: str = "average"
    distance_metrics: List[str] = field(default_factory=lambda: ["euclidean", "correlation"])


def _as_array(matrix: pd.DataFrame) -> np.ndarray:
    validate_numeric_matrix(matrix)
    X = matrix.to_numpy(dtype=float)
    if not np.isfinite(X).all():
        raise ClusteringError("Matrix contains missing or infinite values; filter it first")
    return X


def _check_k(n_clusters: int, n_genes: int) -> None:
    if n_clusters < 1:
        raise ClusteringError(f"Number of clusters must be at least 1, got {n_clusters}")
    if n_clusters > n_genes:
        raise ClusteringError(
            f"Cannot form {n_clusters} clusters from {n_genes} genes"
        )


# =============================================================================
# K-MEANS
# =============================================================================

def _is_fixed_point(X: np.ndarray, labels: np.ndarray, model: KMeans) -> bool:
    """
    True if every center is the mean of the genes assigned to it.

    A run that stops on its last allowed iteration has converged exactly when
    one more Lloyd update would not move the centers. The tolerance is the
    one scikit-learn applies to center shifts: model.tol times the mean
    per-column variance.
    """
    centers = model.cluster_centers_
    means = centers.copy()
    for cluster in np.unique(labels):
        means[cluster] = X[labels == cluster].mean(axis=0)

    tolerance = model.tol * float(np.mean(np.var(X, axis=0)))
    shift = float(((means - centers) ** 2).sum())
    return shift <= max(tolerance, np.finfo(float).eps * float(np.abs(centers).max() + 1.0))


def run_kmeans(
    matrix: pd.DataFrame,
    config: Optional[ClusteringConfig] = None
) -> Tuple[pd.Series, KMeans]:
    """
    Cluster genes with K-means.

    Parameters
    ----------
    matrix : pd.DataFrame
        Filtered expression matrix (genes x time points)
    config : ClusteringConfig, optional
        n_clusters, init, max_iter, n_init and random_seed are used

    Returns
    -------
    labels : pd.Series
        1-based cluster label per gene, named 'kmeans'
    model : KMeans
        The fitted estimator

    Raises
    ------
    ClusteringError
        If k exceeds the number of genes, the data holds fewer distinct
        profiles than k, or the iteration cap stops the run before the
        centers settle
    """
    if config is None:
        config = ClusteringConfig()

    X = _as_array(matrix)
    _check_k(config.n_clusters, len(X))

    model = KMeans(
        n_clusters=config.n_clusters,
        init=config.init,
        max_iter=config.max_iter,
        n_init=config.n_init,
        random_state=config.random_seed,
    )

    with warnings.catch_warnings():
        warnings.simplefilter("error", ConvergenceWarning)
        try:
            raw_labels = model.fit_predict(X)
        except ConvergenceWarning as e:
            raise ClusteringError(f"K-means did not converge: {e}") from e

    if (config.fail_on_max_iter and model.n_iter_ >= config.max_iter
            and not _is_fixed_point(X, raw_labels, model)):
        raise ClusteringError(
            f"K-means reached the iteration cap ({config.max_iter}) without converging"
        )

    labels = pd.Series((raw_labels + 1).astype(int), index=matrix.index, name="kmeans")
    return labels, model


def compute_elbow_curve(
    matrix: pd.DataFrame,
    config: Optional[ClusteringConfig] = None
) -> pd.DataFrame:
    """
    Within-cluster sum of squares for a range of k (elbow method).

    The upper end of config.elbow_k_range is capped at the number of genes.
    Silhouette scores are added for 2 <= k < n_genes.

    Returns
    -------
    pd.DataFrame
        Columns: k, wcss, silhouette
    """
    if config is None:
        config = ClusteringConfig()

    X = _as_array(matrix)
    k_min, k_max = config.elbow_k_range
    k_min = max(1, k_min)
    k_max = min(k_max, len(X))

    rows = []
    for k in range(k_min, k_max + 1):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            model = KMeans(
                n_clusters=k,
                max_iter=config.max_iter,
                n_init=config.n_init,
                random_state=config.random_seed,
            )
            labels = model.fit_predict(X)

        if 2 <= k < len(X) and len(np.unique(labels)) > 1:
            sil = float(silhouette_score(X, labels))
        else:
            sil = np.nan
        rows.append({"k": k, "wcss": float(model.inertia_), "silhouette": sil})

    return pd.DataFrame(rows, columns=["k", "wcss", "silhouette"])


def run_lloyd_restarts(
    matrix: pd.DataFrame,
    config: Optional[ClusteringConfig] = None,
    verbose: bool = True
) -> pd.DataFrame:
    """
    Repeat single-start Lloyd K-means from random initial centers.

    Each run uses its own seed, drawn from config.random_seed, and records the
    final within-cluster sum of squares. The spread of the distribution shows
    how often the algorithm settles in a local optimum.

    Returns
    -------
    pd.DataFrame
        Columns: run, seed, wcss, n_iter
    """
    if config is None:
        config = ClusteringConfig()

    X = _as_array(matrix)
    _check_k(config.n_clusters, len(X))

    rng = np.random.default_rng(config.random_seed)
    seeds = rng.integers(0, 2**31 - 1, size=config.n_restarts)

    if verbose:
        print(f"Running {config.n_restarts} Lloyd restarts (k={config.n_clusters})...", flush=True)

    rows = []
    for run, seed in enumerate(seeds, start=1):
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            model = KMeans(
                n_clusters=config.n_clusters,
                init="random",
                n_init=1,
                max_iter=config.max_iter,
                algorithm="lloyd",
                random_state=int(seed),
            )
            model.fit(X)
        rows.append({
            "run": run,
            "seed": int(seed),
            "wcss": float(model.inertia_),
            "n_iter": int(model.n_iter_),
        })

    restarts = pd.DataFrame(rows, columns=["run", "seed", "wcss", "n_iter"])

    if verbose:
        best = restarts["wcss"].min()
        n_best = int(np.isclose(restarts["wcss"], best).sum())
        print(f"   WCSS range: {best:.2f} - {restarts['wcss'].max():.2f}", flush=True)
        print(f"   Runs reaching the best optimum: {n_best}/{len(restarts)}", flush=True)

    return restarts


# =============================================================================
# HIERARCHICAL CLUSTERING
# =============================================================================

def compute_distance_matrix(matrix: pd.DataFrame, metric: str = "euclidean") -> np.ndarray:
    """
    Condensed pairwise distance vector between genes.

    'correlation' is 1 - Pearson correlation of the two profiles.

    Raises
    ------
    ValueError
        If the metric is not supported
    ClusteringError
        If any distance is not finite (e.g. constant profiles under correlation)
    """
    if metric not in SUPPORTED_METRICS:
        raise ValueError(f"Unsupported distance metric '{metric}'. Choose from {SUPPORTED_METRICS}")

    X = _as_array(matrix)
    if len(X) < 2:
        raise ClusteringError("At least two genes are needed to compute distances")

    with np.errstate(invalid="ignore", divide="ignore"), warnings.catch_warnings():
        warnings.simplefilter("ignore")
        distances = pdist(X, metric=metric)

    if not np.isfinite(distances).all():
        constant = matrix.index[np.isclose(X.std(axis=1), 0)].tolist()
        detail = f" Constant profiles: {constant[:5]}" if constant else ""
        raise ClusteringError(
            f"Degenerate {metric} distance matrix: {int((~np.isfinite(distances)).sum())} "
            f"undefined distances.{detail}"
        )

    return distances


def run_hierarchical(
    matrix: pd.DataFrame,
    metric: str = "euclidean",
    config: Optional[ClusteringConfig] = None
) -> Tuple[pd.Series, np.ndarray]:
    """
    Agglomerative clustering cut at config.n_clusters clusters.

    Parameters
    ----------
    matrix : pd.DataFrame
        Filtered expression matrix
    metric : str
        'euclidean' or 'correlation'
    config : ClusteringConfig, optional
        n_clusters and linkage_method are used

    Returns
    -------
    labels : pd.Series
        1-based cluster label per gene, named 'hclust_<metric>'
    Z : np.ndarray
        SciPy linkage matrix
    """
    if config is None:
        config = ClusteringConfig()

    _check_k(config.n_clusters, len(matrix))
    distances = compute_distance_matrix(matrix, metric)
    Z = linkage(distances, method=config.linkage_method)
    raw_labels = fcluster(Z, config.n_clusters, criterion="maxclust")

    labels = pd.Series(raw_labels.astype(int), index=matrix.index, name=f"hclust_{metric}")
    return labels, Z


# =============================================================================
# COMBINED RUN AND SUMMARIES
# =============================================================================

def run_all_clusterings(
    matrix: pd.DataFrame,
    config: Optional[ClusteringConfig] = None,
    verbose: bool = True
) -> Tuple[pd.DataFrame, Dict[str, object]]:
    """
    Run K-means and hierarchical clustering under every configured metric.

    Returns
    -------
    assignments : pd.DataFrame
        One integer label column per method, indexed like the matrix
    models : dict
        Method name -> fitted KMeans or linkage matrix
    """
    if config is None:
        config = ClusteringConfig()

    if verbose:
        print("=== CLUSTERING GENES ===\n")
        print(f"Genes: {len(matrix)}, time points: {matrix.shape[1]}, k = {config.n_clusters}")

    kmeans_labels, kmeans_model = run_kmeans(matrix, config)
    columns = [kmeans_labels]
    models = {"kmeans": kmeans_model}
    if verbose:
        print(f"✓ K-means converged in {kmeans_model.n_iter_} iterations "
              f"(WCSS = {kmeans_model.inertia_:.2f})")

    for metric in config.distance_metrics:
        labels, Z = run_hierarchical(matrix, metric, config)
        columns.append(labels)
        models[labels.name] = Z
        if verbose:
            print(f"✓ Hierarchical clustering ({config.linkage_method} linkage, {metric}): "
                  f"{labels.nunique()} clusters")

    assignments = pd.concat(columns, axis=1)
    return assignments, models


def summarize_clusters(labels: pd.Series) -> pd.DataFrame:
    """Number of genes per cluster."""
    counts = labels.value_counts().sort_index()
    return pd.DataFrame({"cluster": counts.index.astype(int), "n_genes": counts.values})


def compute_cluster_centroids(matrix: pd.DataFrame, labels: pd.Series) -> pd.DataFrame:
    """Mean expression profile of each cluster (clusters x time points)."""
    return matrix.groupby(labels.reindex(matrix.index).values).mean().rename_axis("cluster")
