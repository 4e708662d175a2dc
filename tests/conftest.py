"""
Pytest configuration and fixtures for diauxic_toolkit tests
"""

import pytest
import pandas as pd
import numpy as np
import os

import matplotlib

matplotlib.use("Agg")  # Non-interactive backend for plotting tests


TIME_COLUMNS = ["t0", "t9.5", "t11.5", "t13.5", "t15.5", "t18.5", "t20.5"]


def pytest_addoption(parser):
    parser.addoption(
        "--run-network", action="store_true", default=False,
        help="run tests that query the Enrichr API"
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "network: mark test as requiring network access (skip by default)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip network tests unless --run-network is passed"""
    if config.getoption("--run-network"):
        return
    skip_network = pytest.mark.skip(reason="need --run-network option to run")
    for item in items:
        if "network" in item.keywords:
            item.add_marker(skip_network)


@pytest.fixture
def expression_matrix():
    """Create a small diauxic-style log-ratio matrix (12 genes x 7 time points)"""
    np.random.seed(42)

    genes = [f"Y{chr(65 + i)}L{i:03d}W" for i in range(12)]
    data = np.random.normal(0, 0.5, (len(genes), len(TIME_COLUMNS)))

    # Induced late in the time course
    data[0:4, -3:] += np.array([2.5, 3.5, 4.0])
    # Repressed late in the time course
    data[4:8, -3:] -= np.array([2.5, 3.5, 4.0])
    # Genes 8-10 stay inside the band; gene 11 gets a missing value
    data[11, :] = [0.1, 0.2, 0.5, 1.5, 3.0, 3.5, 4.0]
    data[11, 2] = np.nan

    df = pd.DataFrame(data, index=genes, columns=TIME_COLUMNS)
    df.index.name = "ORF"
    return df


@pytest.fixture
def two_group_matrix():
    """10 genes x 5 time points: 5 genes near +3, 5 genes near -3"""
    np.random.seed(0)

    genes = [f"GENE{i:02d}" for i in range(10)]
    columns = ["t0", "t30", "t60", "t90", "t120"]
    group_a = 3.0 + np.random.normal(0, 0.1, (5, 5))
    group_b = -3.0 + np.random.normal(0, 0.1, (5, 5))

    df = pd.DataFrame(np.vstack([group_a, group_b]), index=genes, columns=columns)
    df.index.name = "ORF"
    return df


@pytest.fixture
def clustered_matrix():
    """Three well-separated expression shapes, 8 genes each, no constant rows"""
    np.random.seed(7)

    t = np.linspace(0, 1, 7)
    shapes = [
        4.0 * t - 0.5,           # Induced
        -4.0 * t + 0.5,          # Repressed
        3.0 * np.sin(np.pi * t),  # Transient
    ]
    rows = []
    for shape in shapes:
        rows.append(shape + np.random.normal(0, 0.15, (8, len(t))))

    genes = [f"ORF{i:03d}" for i in range(24)]
    df = pd.DataFrame(np.vstack(rows), index=genes, columns=TIME_COLUMNS)
    df.index.name = "ORF"
    return df


@pytest.fixture
def expression_file(tmp_path, expression_matrix):
    """Write the expression matrix as a tab-separated file"""
    path = os.path.join(tmp_path, "diauxic.txt")
    expression_matrix.to_csv(path, sep="\t")
    return path


@pytest.fixture
def mapping_file(tmp_path, expression_matrix):
    """Alias -> numeric annotation identifier file for all but the last gene"""
    path = os.path.join(tmp_path, "alias_mapping.txt")
    genes = list(expression_matrix.index[:-1])
    pd.DataFrame({
        "alias": genes,
        "annotation_id": [850000 + i for i in range(len(genes))],
    }).to_csv(path, sep="\t", index=False)
    return path


@pytest.fixture
def enrichr_response():
    """Raw Enrichr results in API format"""
    return {
        "GO_Biological_Process_2018": [
            [1, "tricarboxylic acid cycle (GO:0006099)", 0.0001, 8.2, 75.5, ["CIT1", "ACO1", "IDH1"], 0.002],
            [2, "glyoxylate cycle (GO:0006097)", 0.001, 6.1, 42.1, ["ICL1", "MLS1"], 0.01],
            [3, "ribosome biogenesis (GO:0042254)", 0.3, 1.0, 1.2, ["RPL3"], 0.6],
        ],
        "KEGG_2019": [
            [1, "Citrate cycle (TCA cycle)", 0.0005, 7.0, 53.2, ["CIT1", "ACO1"], 0.004],
        ],
    }
