"""
Gene Set Enrichment Module

Functional enrichment lookup for a cluster of yeast genes using the
YeastEnrichr web service (the Saccharomyces instance of Enrichr), plus the
helpers that prepare its input:

- Selecting the genes of one example cluster
- Writing the alias -> numeric annotation identifier input file
- Submitting the gene list and parsing the term / p-value table

The service is an external collaborator: network failures are reported and
produce empty results rather than stopping the analysis.

Author: MacCoss Lab
Version: 1.0.0
"""

import os
import pandas as pd
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
from matplotlib.patches import Patch
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
import requests
import json
import time


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class EnrichmentConfig:
    """Configuration for gene set enrichment analysis.

    Attributes
    ----------
    base_url : str
        Root URL of the Enrichr instance to query
    enrichr_libraries : List[str]
        Gene set libraries to query
    pvalue_cutoff : float
        P-value threshold for significant enrichment
    top_n : int
        Maximum number of top terms to return per library
    min_genes : int
        Minimum number of genes required to run enrichment
    rate_limit_delay : float
        Delay between API requests (seconds) for rate limiting
    timeout : int
        Request timeout in seconds

    Examples
    --------
    >>> config = EnrichmentConfig()
    >>> config.enrichr_libraries = ['KEGG_2019']
    >>> config.pvalue_cutoff = 0.01
    """

    base_url: str = 'https://maayanlab.cloud/YeastEnrichr'

    # Libraries to query
    enrichr_libraries: List[str] = field(default_factory=lambda: [
        'GO_Biological_Process_2018',
        'GO_Molecular_Function_2018',
        'GO_Cellular_Component_2018',
        'KEGG_2019',
    ])

    # Significance thresholds
    pvalue_cutoff: float = 0.05
    top_n: int = 20

    # Gene list requirements
    min_genes: int = 5

    # API settings
    rate_limit_delay: float = 0.5
    timeout: int = 30

    # Visualization settings
    bar_figsize: Tuple[int, int] = (12, 8)


# Default library colors for consistent visualization
LIBRARY_COLORS = {
    'GO_Biological_Process_2018': '#1f77b4',
    'GO_Molecular_Function_2018': '#2ca02c',
    'GO_Cellular_Component_2018': '#17becf',
    'KEGG_2019': '#d62728',
}


# =============================================================================
# INPUT PREPARATION
# =============================================================================

def select_cluster_genes(
    assignments: pd.DataFrame,
    method: str,
    cluster: int
) -> List[str]:
    """
    Gene identifiers assigned to one cluster by one clustering method.

    Parameters
    ----------
    assignments : pd.DataFrame
        Cluster labels indexed by gene, one column per method
    method : str
        Column of assignments to use (e.g. 'kmeans')
    cluster : int
        Cluster label to select

    Returns
    -------
    List[str]
        Gene identifiers in assignment order
    """
    if method not in assignments.columns:
        raise KeyError(f"Unknown clustering method '{method}'. Available: {list(assignments.columns)}")

    labels = assignments[method]
    if cluster not in set(labels):
        raise ValueError(f"Cluster {cluster} not found for method '{method}' (labels: {sorted(set(labels))})")

    return labels.index[labels == cluster].tolist()


def write_enrichment_input(
    genes: List[str],
    mapping: pd.Series,
    output_file: str,
    sep: str = '\t'
) -> pd.DataFrame:
    """
    Write the alias -> annotation identifier file for a gene subset.

    Genes missing from the mapping are reported and left out.

    Parameters
    ----------
    genes : List[str]
        Gene aliases (ORFs) to submit
    mapping : pd.Series
        Integer annotation identifiers indexed by alias, from load_identifier_mapping()
    output_file : str
        Destination path
    sep : str
        Field delimiter

    Returns
    -------
    pd.DataFrame
        The written table with columns alias, annotation_id
    """
    mapped = [g for g in genes if g in mapping.index]
    unmapped = [g for g in genes if g not in mapping.index]

    table = pd.DataFrame({
        'alias': mapped,
        'annotation_id': [int(mapping[g]) for g in mapped],
    }, columns=['alias', 'annotation_id'])

    directory = os.path.dirname(output_file)
    if directory:
        os.makedirs(directory, exist_ok=True)
    table.to_csv(output_file, sep=sep, index=False)

    print(f"Enrichment input exported to: {output_file}")
    print(f"  Mapped genes: {len(mapped)}/{len(genes)}")
    if unmapped:
        print(f"  Warning: no annotation identifier for {len(unmapped)} genes: {unmapped[:10]}")

    return table


# =============================================================================
# ENRICHR API FUNCTIONS
# =============================================================================

# Field order of one term in an Enrichr /enrich response
ENRICHR_TERM_FIELDS = ['Rank', 'Term', 'P_Value', 'Z_Score', 'Combined_Score', 'Genes', 'Adj_P_Value']

RESULT_COLUMNS = ['Library', 'Term', 'P_Value', 'Adj_P_Value', 'Z_Score',
                  'Combined_Score', 'Genes', 'N_Genes']


def _clean_gene_list(gene_list: List[str]) -> List[str]:
    """Drop missing and blank identifiers, strip whitespace."""
    clean_genes = []
    for g in gene_list:
        if pd.isna(g):
            continue
        gene_str = str(g).strip()
        if gene_str and gene_str.lower() not in ('nan', 'none'):
            clean_genes.append(gene_str)
    return clean_genes


def _submit_gene_list(genes: List[str], config: EnrichmentConfig, description: str) -> Optional[int]:
    """POST the list to /addList; returns the userListId or None on failure."""
    payload = {
        'list': (None, '\n'.join(genes)),
        'description': (None, description)
    }

    try:
        response = requests.post(
            f'{config.base_url}/addList',
            files=payload,
            timeout=config.timeout
        )
        if not response.ok:
            print(f"  Error submitting gene list: {response.status_code}")
            return None
        return json.loads(response.text)['userListId']

    except requests.exceptions.Timeout:
        print("  Error: YeastEnrichr request timed out")
    except requests.exceptions.ConnectionError:
        print("  Error: Could not connect to YeastEnrichr (check internet connection)")
    except (requests.exceptions.RequestException, ValueError, KeyError) as e:
        print(f"  Error submitting gene list: {e}")
    return None


def query_enrichr(
    gene_list: List[str],
    config: Optional[EnrichmentConfig] = None,
    description: str = 'Diauxic Shift Cluster'
) -> Dict[str, List]:
    """
    Submit a gene list and fetch the enrichment of every configured library.

    Parameters
    ----------
    gene_list : List[str]
        Gene identifiers (systematic ORF names or standard names)
    config : EnrichmentConfig, optional
        Configuration object. Uses defaults if not provided.
    description : str
        Description for the gene list submission

    Returns
    -------
    Dict[str, List]
        Library name -> raw term lists (see ENRICHR_TERM_FIELDS). Empty if
        the list is shorter than config.min_genes or the submission fails;
        libraries whose query fails are left out.
    """
    if config is None:
        config = EnrichmentConfig()

    genes = _clean_gene_list(gene_list)
    if len(genes) < config.min_genes:
        print(f"  Warning: Only {len(genes)} genes provided, need at least {config.min_genes}")
        return {}

    user_list_id = _submit_gene_list(genes, config, description)
    if user_list_id is None:
        return {}

    results = {}
    for library in config.enrichr_libraries:
        time.sleep(config.rate_limit_delay)
        try:
            response = requests.get(
                f'{config.base_url}/enrich',
                params={'userListId': user_list_id, 'backgroundType': library},
                timeout=config.timeout
            )
            if response.ok:
                terms = json.loads(response.text).get(library)
                if terms is not None:
                    results[library] = terms
            else:
                print(f"  Error querying {library}: {response.status_code}")
        except (requests.exceptions.RequestException, ValueError) as e:
            print(f"  Error querying {library}: {e}")

    return results


def parse_enrichr_results(
    results: Dict[str, List],
    config: Optional[EnrichmentConfig] = None
) -> pd.DataFrame:
    """
    Tidy table of the significant terms, top config.top_n per library.

    Returns
    -------
    pd.DataFrame
        RESULT_COLUMNS, Genes joined with ';'. Sorted by Combined_Score
        descending; no rows if nothing passes config.pvalue_cutoff.
    """
    if config is None:
        config = EnrichmentConfig()

    n_fields = len(ENRICHR_TERM_FIELDS)
    tables = []
    for library, terms in results.items():
        rows = [term[:n_fields] for term in terms[:config.top_n] if len(term) >= n_fields]
        if rows:
            table = pd.DataFrame(rows, columns=ENRICHR_TERM_FIELDS)
            table['Library'] = library
            tables.append(table)

    if not tables:
        return pd.DataFrame(columns=RESULT_COLUMNS)

    enrichment_df = pd.concat(tables, ignore_index=True)
    enrichment_df = enrichment_df[enrichment_df['P_Value'] <= config.pvalue_cutoff].copy()
    if enrichment_df.empty:
        return pd.DataFrame(columns=RESULT_COLUMNS)

    gene_lists = enrichment_df['Genes'].apply(lambda g: g if isinstance(g, list) else [g])
    enrichment_df['Genes'] = gene_lists.apply(';'.join)
    enrichment_df['N_Genes'] = gene_lists.apply(len)

    return (enrichment_df[RESULT_COLUMNS]
            .sort_values('Combined_Score', ascending=False)
            .reset_index(drop=True))


# =============================================================================
# HIGH-LEVEL ENRICHMENT FUNCTIONS
# =============================================================================

def run_enrichment_analysis(
    gene_list: List[str],
    config: Optional[EnrichmentConfig] = None,
    description: str = 'Diauxic Shift Cluster',
    verbose: bool = True
) -> pd.DataFrame:
    """
    Submit a gene list and return the parsed term / p-value table.

    Examples
    --------
    >>> genes = select_cluster_genes(assignments, 'kmeans', 1)
    >>> enrichment = run_enrichment_analysis(genes, description='K-means cluster 1')
    """
    if config is None:
        config = EnrichmentConfig()

    clean_genes = _clean_gene_list(gene_list)

    if verbose:
        print(f"Running enrichment on {len(clean_genes)} genes...", flush=True)

    raw_results = query_enrichr(clean_genes, config, description)

    if not raw_results:
        if verbose:
            print("  No results returned from YeastEnrichr", flush=True)
        return pd.DataFrame()

    enrichment_df = parse_enrichr_results(raw_results, config)

    if verbose:
        if not enrichment_df.empty:
            print(f"  Found {len(enrichment_df)} significant terms", flush=True)
        else:
            print("  No significant enrichment found", flush=True)

    return enrichment_df


def run_enrichment_by_cluster(
    assignments: pd.DataFrame,
    method: str = 'kmeans',
    config: Optional[EnrichmentConfig] = None,
    verbose: bool = True
) -> Dict[int, pd.DataFrame]:
    """
    Run enrichment for every cluster of one clustering method.

    Clusters with fewer than config.min_genes genes are skipped and map to
    an empty DataFrame.
    """
    if config is None:
        config = EnrichmentConfig()

    enrichment_results = {}

    for cluster in sorted(assignments[method].unique()):
        gene_list = select_cluster_genes(assignments, method, cluster)

        if verbose:
            print(f"\n{method} cluster {cluster}: {len(gene_list)} genes", flush=True)

        if len(gene_list) >= config.min_genes:
            enrichment_results[int(cluster)] = run_enrichment_analysis(
                gene_list,
                config,
                description=f'{method} cluster {cluster}',
                verbose=verbose
            )
        else:
            enrichment_results[int(cluster)] = pd.DataFrame()
            if verbose:
                print(f"  Skipping - need at least {config.min_genes} genes", flush=True)

    return enrichment_results


def merge_enrichment_results(enrichment_dict: Dict[int, pd.DataFrame]) -> pd.DataFrame:
    """Stack per-cluster enrichment tables with a 'Cluster' column."""
    all_dfs = []
    for cluster, df in enrichment_dict.items():
        if not df.empty:
            df_copy = df.copy()
            df_copy['Cluster'] = cluster
            all_dfs.append(df_copy)

    if all_dfs:
        return pd.concat(all_dfs, ignore_index=True)
    else:
        return pd.DataFrame()


# =============================================================================
# VISUALIZATION
# =============================================================================

def plot_enrichment_barplot(
    enrichment_df: pd.DataFrame,
    title: str = 'Gene Set Enrichment',
    top_n: int = 15,
    figsize: Optional[Tuple[int, int]] = None,
    library_colors: Optional[Dict[str, str]] = None
) -> Optional[Figure]:
    """
    Horizontal bar plot of the top enriched terms by combined score.

    Bars are colored by library and labeled with the number of overlapping
    genes. figsize defaults to EnrichmentConfig.bar_figsize. Returns None
    (and prints a note) when there is nothing to plot.
    """
    if enrichment_df.empty:
        print(f"  No significant enrichment results for: {title}")
        return None

    if figsize is None:
        figsize = EnrichmentConfig().bar_figsize
    if library_colors is None:
        library_colors = LIBRARY_COLORS

    # Highest score at the top
    plot_df = enrichment_df.nlargest(top_n, 'Combined_Score').iloc[::-1]
    term_labels = [t if len(t) <= 55 else t[:55] + '...' for t in plot_df['Term']]

    fig, ax = plt.subplots(figsize=figsize)
    bars = ax.barh(
        range(len(plot_df)),
        plot_df['Combined_Score'],
        color=[library_colors.get(lib, 'gray') for lib in plot_df['Library']],
        alpha=0.8,
        tick_label=term_labels,
    )
    ax.tick_params(axis='y', labelsize=9)
    ax.bar_label(bars, labels=[f'({n})' for n in plot_df['N_Genes']],
                 padding=3, fontsize=8, color='gray')

    ax.set_xlabel('Combined Score', fontsize=12)
    ax.set_title(title, fontsize=14, fontweight='bold')

    libraries = list(dict.fromkeys(plot_df['Library'].iloc[::-1]))
    ax.legend(
        handles=[Patch(facecolor=library_colors.get(lib, 'gray'), alpha=0.8, label=lib.replace('_', ' '))
                 for lib in libraries],
        loc='lower right',
        fontsize=8,
    )

    plt.tight_layout()
    return fig
