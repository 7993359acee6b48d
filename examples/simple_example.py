"""
Simple Example: Running the COFFEE equilibrium solver
======================================================

This example demonstrates a basic workflow:

1. Define the composition matrix, free energies and monomer concentrations
2. Build a validated problem (free energies converted to log-weights)
3. Run the trust-region optimizer
4. Inspect the polymer concentrations and the conservation error
"""

import numpy as np

from coffee import EquilibriumProblem, OptimizerConfig, TrustRegionOptimizer
from coffee.core import MessageSink


def create_dimer_problem(config: OptimizerConfig) -> EquilibriumProblem:
    """
    Two strands A and B forming the complexes A, B, AA, AB, BB.

    Composition (rows = monomers, columns = polymers):

        A   B   AA  AB  BB
        1   0   2   1   0     <- monomer A
        0   1   0   1   2     <- monomer B

    Free energies are in kcal/mol and concentrations in mol/L.
    """
    composition = np.array([
        [1.0, 0.0, 2.0, 1.0, 0.0],
        [0.0, 1.0, 0.0, 1.0, 2.0],
    ])
    free_energies = np.array([0.0, 0.0, -5.0, -12.0, -4.0])
    x0 = np.array([1.0e-6, 2.0e-6])
    return EquilibriumProblem.from_free_energies(composition, free_energies, x0, config)


def main():
    print("\n" + "=" * 70)
    print("COFFEE - Example Mode")
    print("=" * 70)

    config = OptimizerConfig(
        max_iterations=250,     # Iteration budget
        temp_celsius=37.0,      # Temperature for kT and water molarity
        scalarity=True,         # kcal/mol + mol/L inputs
        verbose=True,           # Report elapsed time
        use_terminal=False,     # Keep the console quiet; collect messages instead
    )
    problem = create_dimer_problem(config)
    messages = MessageSink()

    results = TrustRegionOptimizer(problem, config, sink=messages).optimize()

    print("".join(messages.messages))
    names = ["A", "B", "AA", "AB", "BB"]
    for name, conc in zip(names, results.optimal_x):
        print(f"  [{name:>2}] = {conc:.4e} M")
    print(f"\nStatus: {results.status.value}, error = {results.concentration_error:.3e}")


if __name__ == "__main__":
    main()
