import numpy as np

from tuner.configs.optimization.algorithms import OptimizationAlgorithm, SwarmConfig
from tuner.optimization.convergence import TrackerMode
from tuner.optimization.results.models import Candidate
from .base import BaseOptimizer, SearchContext


class ParticleSwarmOptimizer(BaseOptimizer):
    """
    Global-best particle swarm over the numeric encoding of the space.

    Categorical parameters are encoded as choice indices. Positions are clipped
    to the encoded bounds after every move; candidates are decoded (discrete and
    categorical coordinates rounded) and clamped before evaluation.
    """

    algorithm = OptimizationAlgorithm.PARTICLE_SWARM
    settings_class = SwarmConfig
    tracker_mode = TrackerMode.POPULATION

    def _search(self, context: SearchContext):
        settings: SwarmConfig = self.settings
        space, rng = context.space, context.rng
        n_particles = settings.swarm_size

        lows, highs = space.vector_bounds()
        positions = np.array([space.encode(space.sample_assignment(rng)) for _ in range(n_particles)])
        velocities = np.zeros_like(positions)

        personal_best = positions.copy()
        personal_best_scores = np.full(n_particles, -np.inf)
        global_best = positions[0].copy()
        global_best_score = -np.inf

        while context.tracker.should_continue():
            swarm = [Candidate(assignment=space.clamp(space.decode(position))) for position in positions]
            context.evaluate(swarm, require_success=True)
            scores = np.array([particle.fitness for particle in swarm], dtype=float)

            improved = scores > personal_best_scores
            personal_best[improved] = positions[improved]
            personal_best_scores[improved] = scores[improved]

            leader = int(np.argmax(personal_best_scores))
            if personal_best_scores[leader] > global_best_score:
                global_best_score = float(personal_best_scores[leader])
                global_best = personal_best[leader].copy()

            if context.step(scores.tolist()):
                break

            r1 = rng.rand(*positions.shape)
            r2 = rng.rand(*positions.shape)
            velocities = (
                settings.inertia * velocities
                + settings.cognitive * r1 * (personal_best - positions)
                + settings.social * r2 * (global_best - positions)
            )
            positions = np.clip(positions + velocities, lows, highs)
