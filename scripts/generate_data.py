#!/usr/bin/env python3
"""
Generate a synthetic MemPPI dataset (nodes.csv + edges.csv).

Default volumes:
- 2,000 proteins across five families
- ~60,000 interactions (≈8% experiment, the rest predictions)

Includes the messiness the loaders must cope with:
- 'NA' tissues and empty fields
- a few duplicate edge ids
- a few edges pointing at proteins with no node row

Usage:
    poetry run python scripts/generate_data.py --out data/
    poetry run python scripts/generate_data.py --proteins 500 --edges 10000 --out data/small
"""

import argparse
import random
import string
import sys
from pathlib import Path

from faker import Faker

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from memppi_atlas.dataset import write_csv
from memppi_atlas.schema import EDGE_FIELDS, NODE_FIELDS

fake = Faker()
Faker.seed(42)
random.seed(42)

FAMILIES = ["TM", "TF", "Kinase", "Receptor", "Other"]
FAMILY_WEIGHTS = [0.45, 0.1, 0.15, 0.2, 0.1]
TISSUES = [
    "brain", "liver", "kidney", "heart", "lung", "skin", "spleen",
    "pancreas", "testis", "placenta", "muscle", "adipose",
]
CONFIDENCE = ["high", "low"]


def accession() -> str:
    """UniProt-like accession, e.g. P12345 / Q9ABC1."""
    return (
        random.choice("OPQ")
        + random.choice(string.digits)
        + "".join(random.choices(string.ascii_uppercase + string.digits, k=3))
        + random.choice(string.digits)
    )


class MemPPIGenerator:
    """Generate interconnected protein and interaction rows."""

    def __init__(self, n_proteins: int, n_edges: int, experiment_share: float = 0.08):
        self.n_proteins = n_proteins
        self.n_edges = n_edges
        self.experiment_share = experiment_share
        self.nodes: list[dict] = []
        self.edges: list[dict] = []

    def generate_nodes(self):
        print(f"Generating {self.n_proteins:,} proteins...")
        seen: set[str] = set()
        while len(self.nodes) < self.n_proteins:
            protein = accession()
            if protein in seen:
                continue
            seen.add(protein)
            gene = fake.unique.lexify("????").upper() + str(random.randint(1, 20))
            tissues = random.sample(TISSUES, k=random.randint(0, 4))
            self.nodes.append({
                "protein": protein,
                "entry_name": f"{gene}_HUMAN" if random.random() > 0.05 else None,
                "description": fake.sentence(nb_words=6).rstrip("."),
                "gene_names": " ".join([gene] + ([gene + "L"] if random.random() < 0.2 else [])),
                "family": random.choices(FAMILIES, FAMILY_WEIGHTS)[0] if random.random() > 0.03 else None,
                "expression_tissue": "\\".join(tissues) if tissues else "NA",
            })

    def generate_edges(self):
        print(f"Generating {self.n_edges:,} interactions...")
        ids = [n["protein"] for n in self.nodes]
        # Preferential attachment so a few hubs dominate, as in real PPI data
        weights = [1.0 / (rank + 1) ** 0.6 for rank in range(len(ids))]
        pairs: set[tuple[str, str]] = set()

        while len(self.edges) < self.n_edges:
            p1, p2 = random.choices(ids, weights, k=2)
            if p1 == p2:
                continue
            p1, p2 = sorted((p1, p2))
            if (p1, p2) in pairs:
                continue
            pairs.add((p1, p2))

            experimental = random.random() < self.experiment_share
            enriched = random.random() < 0.15
            self.edges.append({
                "edge": f"{p1}_{p2}",
                "protein1": p1,
                "protein2": p2,
                "fusion_pred_prob": None if experimental and random.random() < 0.5
                else round(random.betavariate(5, 2), 4),
                "enriched_tissue": random.choice(TISSUES) if enriched else "NA",
                "tissue_enriched_confidence": random.choice(CONFIDENCE) if enriched else "NA",
                "positive_type": ("experimental" if random.random() < 0.3 else "experiment")
                if experimental else "prediction",
            })

    def add_messiness(self):
        print("Adding duplicates and dangling edges...")
        for edge in random.sample(self.edges, k=min(5, len(self.edges))):
            self.edges.append(dict(edge))
        for _ in range(3):
            orphan = accession()
            partner = random.choice(self.nodes)["protein"]
            self.edges.append({
                "edge": f"{partner}_{orphan}",
                "protein1": partner,
                "protein2": orphan,
                "fusion_pred_prob": 0.91,
                "enriched_tissue": "NA",
                "tissue_enriched_confidence": "NA",
                "positive_type": "prediction",
            })

    def generate_all(self):
        self.generate_nodes()
        self.generate_edges()
        self.add_messiness()

    def write(self, out_dir: Path):
        out_dir.mkdir(parents=True, exist_ok=True)
        n_nodes = write_csv(out_dir / "nodes.csv", self.nodes, NODE_FIELDS)
        n_edges = write_csv(out_dir / "edges.csv", self.edges, EDGE_FIELDS)
        print(f"Wrote {n_nodes:,} nodes and {n_edges:,} edges to {out_dir}")


def main():
    parser = argparse.ArgumentParser(description="Generate a synthetic MemPPI dataset")
    parser.add_argument("--proteins", type=int, default=2_000, help="Number of proteins")
    parser.add_argument("--edges", type=int, default=60_000, help="Number of interactions")
    parser.add_argument(
        "--out",
        type=Path,
        default=Path(__file__).parent.parent / "data",
        help="Output directory (default: data/)",
    )
    args = parser.parse_args()

    print("=" * 60)
    print("MemPPI Atlas - Synthetic Data Generator")
    print("=" * 60)

    max_pairs = args.proteins * (args.proteins - 1) // 2
    if args.edges > max_pairs:
        print(f"Error: {args.edges:,} edges exceed {max_pairs:,} possible pairs", file=sys.stderr)
        sys.exit(1)

    generator = MemPPIGenerator(args.proteins, args.edges)
    generator.generate_all()
    generator.write(args.out)

    print("\nDone!")


if __name__ == "__main__":
    main()
