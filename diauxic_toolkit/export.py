"""
Export Module for Diauxic Shift Expression Toolkit

This module writes cluster assignments to disk, reads them back, and
records every analysis parameter in a timestamped configuration file so a
run can be reproduced.
"""

import os
import pandas as pd
from datetime import datetime
from typing import Dict, Any, Optional, List

from .validation import ExpressionDataError, validate_assignments_table


def export_cluster_assignments(
    assignments: pd.DataFrame,
    output_file: str,
    id_name: str = "ORF",
) -> str:
    """
    Write cluster labels as a tab-separated file.

    One row per gene: the gene identifier followed by one integer label
    column per clustering method.

    Parameters:
    -----------
    assignments : pd.DataFrame
        Labels indexed by gene identifier, one column per method
    output_file : str
        Destination path
    id_name : str
        Header of the identifier column

    Returns:
    --------
    str
        Path of the written file
    """

    validate_assignments_table(assignments)

    export_df = assignments.astype("int64").copy()
    export_df.index.name = id_name

    directory = os.path.dirname(output_file)
    if directory:
        os.makedirs(directory, exist_ok=True)

    export_df.to_csv(output_file, sep="\t")
    print(f"Cluster assignments exported to: {output_file}")
    print(f"  {len(export_df)} genes x {export_df.shape[1]} methods ({', '.join(export_df.columns)})")

    return output_file


def load_cluster_assignments(input_file: str) -> pd.DataFrame:
    """
    Read a file written by export_cluster_assignments().

    Returns:
    --------
    pd.DataFrame
        Integer labels indexed by gene identifier (as strings)
    """

    if not os.path.exists(input_file):
        raise FileNotFoundError(f"Cluster assignment file not found: {input_file}")

    raw = pd.read_csv(input_file, sep="\t", index_col=0, dtype=str)
    try:
        assignments = raw.astype("int64")
    except ValueError as e:
        raise ExpressionDataError(f"Non-integer cluster labels in {input_file}: {e}")

    return assignments


def export_timestamped_config(
    config_dict: Dict[str, Any],
    output_prefix: str = "diauxic_analysis",
    analysis_description: str = "Diauxic shift clustering analysis",
    computed_values: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Export analysis configuration as a timestamped Python file.

    Parameters:
    -----------
    config_dict : dict
        Dictionary containing all configuration parameters
    output_prefix : str
        Prefix for the configuration filename
    analysis_description : str
        Description of the analysis type
    computed_values : dict, optional
        Additional computed values to include as comments

    Returns:
    --------
    str
        Path to the exported configuration file
    """

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    config_file = f"{output_prefix}_config_{timestamp}.py"

    print(f"Exporting analysis configuration to: {config_file}")

    with open(config_file, "w", encoding="utf-8") as f:
        f.write(
            "# =============================================================================\n"
        )
        f.write("# DIAUXIC SHIFT ANALYSIS CONFIGURATION\n")
        f.write(f"# Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
        f.write(f"# Analysis: {analysis_description}\n")
        f.write(
            "# =============================================================================\n\n"
        )

        section_configs = [
            (1, "INPUT FILES AND PATHS", ["expression_file", "mapping_file", "id_column"]),
            (2, "GENE FILTERING PARAMETERS", ["delta"]),
            (
                3,
                "K-MEANS CONFIGURATION",
                ["n_clusters", "max_iter", "n_init", "random_seed", "elbow_k_range", "n_restarts"],
            ),
            (4, "HIERARCHICAL CLUSTERING CONFIGURATION", ["linkage_method", "distance_metrics"]),
            (
                5,
                "ENRICHMENT SETTINGS",
                ["enrichment_method", "example_cluster", "enrichr_libraries", "enrichment_pvalue_cutoff"],
            ),
            (6, "OUTPUT AND EXPORT SETTINGS", ["output_prefix", "save_figures"]),
        ]

        for section_num, section_name, param_names in section_configs:
            _write_config_section(
                f, section_name, config_dict, param_names, section_num
            )

        if computed_values:
            f.write(
                "# =============================================================================\n"
            )
            f.write("# COMPUTED VALUES (for reference)\n")
            f.write(
                "# =============================================================================\n"
            )

            for key, value in computed_values.items():
                if isinstance(value, dict):
                    f.write(f"# {key}:\n")
                    for sub_key, sub_value in value.items():
                        f.write(f"#   {sub_key}: {sub_value}\n")
                else:
                    f.write(f"# {key}: {value}\n")

    return config_file


def _write_config_section(
    file_handle,
    section_name: str,
    config_dict: Dict[str, Any],
    param_names: List[str],
    section_number: int = 1,
) -> None:
    """Write a configuration section to file."""

    file_handle.write(
        "# =============================================================================\n"
    )
    file_handle.write(f"# {section_number}. {section_name}\n")
    file_handle.write(
        "# =============================================================================\n"
    )

    for param in param_names:
        if param in config_dict:
            value = config_dict[param]
            file_handle.write(f"{param} = {repr(value)}\n")

    file_handle.write("\n")


def create_config_dict_from_notebook_vars(**kwargs) -> Dict[str, Any]:
    """
    Create a configuration dictionary from notebook variables.

    Parameters:
    -----------
    **kwargs : various
        Configuration variables from the notebook; anything not given
        keeps its default

    Returns:
    --------
    dict
        Configuration dictionary
    """

    config_template = {
        # Input files
        "expression_file": "",
        "mapping_file": "",
        "id_column": None,
        # Gene filtering
        "delta": 2.2,
        # K-means
        "n_clusters": 6,
        "max_iter": 100,
        "n_init": 10,
        "random_seed": 42,
        "elbow_k_range": (1, 10),
        "n_restarts": 1000,
        # Hierarchical clustering
        "linkage_method": "average",
        "distance_metrics": ["euclidean", "correlation"],
        # Enrichment
        "enrichment_method": "kmeans",
        "example_cluster": 1,
        "enrichr_libraries": [],
        "enrichment_pvalue_cutoff": 0.05,
        # Output settings
        "output_prefix": "diauxic_analysis",
        "save_figures": False,
    }

    config_dict = config_template.copy()
    config_dict.update(kwargs)

    return config_dict
