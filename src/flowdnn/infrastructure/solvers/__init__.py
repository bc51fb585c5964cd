from ._sgd import SgdSolver, SolverConfig

__all__ = [SgdSolver.__name__, SolverConfig.__name__]
