"""Tests for the discrete-time vaccination SIR simulator."""

import pytest
import numpy as np
import pandas as pd

from contagion_network.config import VaccinationParameters
from contagion_network.errors import InvalidConfiguration
from contagion_network.graph import ContactGraph
from contagion_network.simulate_vaccination import VaccinationSIRSimulator, simulate_vaccination
from contagion_network.topology import erdos_renyi_from_mean_degree


def star_graph(leaves):
    return ContactGraph.build(leaves + 1, [0] * leaves, list(range(1, leaves + 1)))


class TestVaccinationSimulation:
    """Test the vaccination process."""

    def test_conservation_and_length(self):
        """S + I + V + R equals n at every step, over t_max + 1 steps."""
        g = erdos_renyi_from_mean_degree(400, 8.0, seed=1)
        result = simulate_vaccination(
            g, omega=0.3, beta=0.3, gamma=3, t_max=40, vac_max=0.5, initial_infected=[0, 1], seed=2
        )

        total = result.S + result.I + result.V + result.R
        assert len(result.I) == 41
        assert (total == g.n).all()
        assert result.I[0] == 2
        assert (np.diff(result.R) >= 0).all()
        assert (np.diff(result.V) >= 0).all()

    def test_star_full_vaccination(self):
        """With omega = 1 every exposed leaf is vaccinated."""
        result = simulate_vaccination(
            star_graph(4), omega=1.0, beta=0.0, gamma=3, t_max=10, vac_max=1.0,
            initial_infected=[0], seed=1,
        )

        assert result.V[1] == 4
        assert result.R[4] == 1
        assert result.final_counts() == {"S": 0, "I": 0, "V": 4, "R": 1}

    def test_vaccination_budget(self):
        """No more than floor(vac_max * n) nodes are vaccinated."""
        result = simulate_vaccination(
            star_graph(4), omega=1.0, beta=0.0, gamma=3, t_max=10, vac_max=0.4,
            initial_infected=[0], seed=1,
        )

        assert result.final_counts() == {"S": 2, "I": 0, "V": 2, "R": 1}

    def test_no_vaccine(self):
        """vac_max = 0 never vaccinates."""
        g = erdos_renyi_from_mean_degree(200, 6.0, seed=3)
        result = simulate_vaccination(
            g, omega=1.0, beta=0.5, gamma=2, t_max=30, vac_max=0.0, initial_infected=[0], seed=4
        )

        assert (result.V == 0).all()

    def test_radius_two(self):
        """Radius 2 also vaccinates the neighbors of exposed nodes."""
        g = ContactGraph.build(3, [0, 1], [1, 2])
        kwargs = dict(omega=1.0, beta=0.0, gamma=1, t_max=5, vac_max=1.0, initial_infected=[0], seed=1)

        near = simulate_vaccination(g, radius=1, **kwargs)
        far = simulate_vaccination(g, radius=2, **kwargs)

        assert near.final_counts()["V"] == 1
        assert far.final_counts()["V"] == 2

    def test_die_out_keeps_last_counts(self):
        """After the last infected node recovers the counts stay constant."""
        result = simulate_vaccination(
            star_graph(3), omega=0.0, beta=0.0, gamma=1, t_max=20, vac_max=0.0,
            initial_infected=[0], seed=1,
        )

        assert (result.I[3:] == 0).all()
        assert (result.R[3:] == 1).all()
        assert (result.S == 3).all()

    def test_deterministic(self):
        """Same seed, same trajectory."""
        g = erdos_renyi_from_mean_degree(300, 6.0, seed=5)
        args = (g, 0.2, 0.3, 3, 30, 0.5, 1, [0])
        r1 = simulate_vaccination(*args, seed=8)
        r2 = simulate_vaccination(*args, seed=8)

        assert np.array_equal(r1.I, r2.I)
        assert np.array_equal(r1.V, r2.V)

    def test_csv(self, tmp_path):
        """Rows are itr,t,S,I,V,R."""
        result = simulate_vaccination(
            star_graph(3), 1.0, 0.0, 1, 5, 1.0, initial_infected=[0], seed=1
        )
        path = result.write_time_series_csv(tmp_path / "vac.csv", itr=7)
        frame = pd.read_csv(path)

        assert list(frame.columns) == ["itr", "t", "S", "I", "V", "R"]
        assert len(frame) == 6
        assert (frame["itr"] == 7).all()

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"omega": 1.5},
            {"beta": -0.1},
            {"radius": 3},
            {"t_max": 0},
            {"initial_infected": [10]},
            {"initial_infected": [1.5]},
            {"initial_infected": [True]},
        ],
    )
    def test_invalid_configuration(self, kwargs):
        """Out-of-range probabilities, radius or seeds are rejected."""
        params = dict(omega=0.5, beta=0.5, gamma=2, t_max=10, vac_max=0.5, initial_infected=[0])
        params.update(kwargs)
        with pytest.raises(InvalidConfiguration):
            VaccinationSIRSimulator(star_graph(3), **params)

    def test_duplicate_seeds_collapse(self):
        """Repeated initial nodes are kept once, in first-seen order."""
        sim = VaccinationSIRSimulator(
            star_graph(3), 0.5, 0.5, 2, 10, 0.5, initial_infected=[2, np.int64(0), 2, 0]
        )

        assert sim.initial_infected == (2, 0)
        assert sim.run().I[0] == 2

    def test_step_rounding(self):
        """Step counts given as floats are rounded half up."""
        params = VaccinationParameters(gamma=2.5, t_max=10.4)

        assert params.gamma == 3
        assert params.t_max == 10
