"""
Tests for source/loss accumulation and the full chemistry step.
"""
import csv
import os
import shutil
import tempfile
import unittest

import numpy as np

from ionochem.config import ChemistryConfig
from ionochem.grid.grid import Grid
from ionochem.species.neutrals import NeutralContainer
from ionochem.species.ions import IonContainer
from ionochem.chemistry.chemistry import Chemistry
from ionochem.errors import MissingFieldError, ResourceError

HEADER = ["loss1", "loss2", "loss3", "source1", "source2", "source3",
          "rate", "branching", "heat", "perturb",
          "Numerator", "Denominator", "Exponent", "Piecewise", "Min", "Max", "Formula Type"]
UNITS = [""] * len(HEADER)


def make_row(losses=(), sources=(), rate="", branching="", heat="",
             numerator="", denominator="", exponent="", piecewise="", vmin="", vmax="", ftype=""):
    losses = list(losses) + [""] * (3 - len(losses))
    sources = list(sources) + [""] * (3 - len(sources))
    return losses + sources + [str(rate), str(branching), str(heat), "",
                               str(numerator), denominator, str(exponent), piecewise,
                               str(vmin), str(vmax), str(ftype)]


class KineticsTestCase(unittest.TestCase):

    neutral_species = ["A", "B", "C", "O"]
    ion_species = ["O+", "N+"]

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.grid = Grid(3, 2, 4)
        self.neutrals = NeutralContainer(self.grid, self.neutral_species, Tn0=1200.0)
        self.ions = IonContainer(self.grid, self.ion_species)

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def build(self, rows, **kwargs):
        path = os.path.join(self.test_dir, "chemistry.csv")
        with open(path, "w", newline="") as f:
            csv.writer(f).writerows([HEADER, UNITS] + rows)
        return Chemistry(self.neutrals, self.ions, ChemistryConfig(chemistry_file=path, **kwargs))


class TestCalcChemicalSources(KineticsTestCase):

    def test_mass_action_with_repeated_reactant(self):
        k = 3.0e-17
        chemistry = self.build([make_row(["A", "A"], ["B"], rate=k)])
        self.neutrals.initialize_density("A", 2.0e8)

        chemistry.calc_chemical_sources(self.neutrals, self.ions)

        flux = k * 2.0e8 ** 2
        np.testing.assert_allclose(self.neutrals.list_losses_grid[0], 2.0 * flux, rtol=1e-12)
        np.testing.assert_allclose(self.neutrals.list_sources_grid[1], flux, rtol=1e-12)
        np.testing.assert_allclose(self.neutrals.list_sources_grid[0], 0.0)

    def test_branching_ratio_scales_flux(self):
        chemistry = self.build([make_row(["A", "B"], ["C"], rate=1.0e-10, branching=0.2)])
        self.neutrals.initialize_density("A", 1.0e5)
        self.neutrals.initialize_density("B", 3.0e5)

        chemistry.calc_chemical_sources(self.neutrals, self.ions)

        flux = 1.0e-10 * 0.2 * 1.0e5 * 3.0e5
        np.testing.assert_allclose(self.neutrals.list_sources_grid[2], flux, rtol=1e-12)
        np.testing.assert_allclose(self.neutrals.list_losses_grid[0], flux, rtol=1e-12)
        np.testing.assert_allclose(self.neutrals.list_losses_grid[1], flux, rtol=1e-12)

    def test_piecewise_range(self):
        chemistry = self.build([make_row(["A"], ["B"], rate=2.0, piecewise="T", vmin=200, vmax=300)])
        self.neutrals.initialize_density("A", 5.0)
        T = self.grid.zeros()
        T[0, :, :] = 150.0
        T[1, :, :] = 250.0
        T[2, :, :] = 350.0
        T[1, 0, 0] = 200.0
        T[1, 1, 3] = 300.0

        chemistry.calc_chemical_sources(self.neutrals, self.ions, {"T": T})

        sources_B = self.neutrals.list_sources_grid[1]
        np.testing.assert_allclose(sources_B[0], 0.0)
        np.testing.assert_allclose(sources_B[2], 0.0)
        np.testing.assert_allclose(sources_B[1], 10.0)

    def test_temperature_dependent_rate(self):
        chemistry = self.build([make_row(["A"], ["B"], rate=4.0, numerator=300.0,
                                         denominator="Tn", exponent=0.5, ftype=1)])
        self.neutrals.initialize_density("A", 1.0)

        chemistry.calc_chemical_sources(self.neutrals, self.ions)

        # (300 / 1200)^0.5 = 0.5
        np.testing.assert_allclose(self.neutrals.list_sources_grid[1], 2.0, rtol=1e-12)

    def test_zero_temperature_is_floored(self):
        chemistry = self.build([make_row(["A"], ["B"], rate=1.0, numerator=300.0,
                                         denominator="Tx", exponent=1.0, ftype=1)])
        self.neutrals.initialize_density("A", 1.0)

        chemistry.calc_chemical_sources(self.neutrals, self.ions, {"Tx": self.grid.zeros()})

        self.assertTrue(np.all(np.isfinite(self.neutrals.list_sources_grid[1])))
        np.testing.assert_allclose(self.neutrals.list_sources_grid[1], 300.0)

    def test_missing_field(self):
        chemistry = self.build([make_row(["A"], ["B"], rate=1.0, numerator=300.0,
                                         denominator="Tx", exponent=1.0, ftype=1)])
        with self.assertRaises(MissingFieldError):
            chemistry.calc_chemical_sources(self.neutrals, self.ions)

    def test_ionization_initializes_sources_and_losses(self):
        chemistry = self.build([make_row(["A"], ["B"], rate=0.0)])
        self.neutrals.list_ionization_grid[3][:, :, :] = 7.0
        self.ions.list_ionization_grid[0][:, :, :] = 7.0
        self.neutrals.list_sources_grid[3][:, :, :] = 99.0
        self.ions.list_losses_grid[0][:, :, :] = 99.0

        chemistry.calc_chemical_sources(self.neutrals, self.ions)

        np.testing.assert_allclose(self.neutrals.list_losses_grid[3], 7.0)
        np.testing.assert_allclose(self.neutrals.list_sources_grid[3], 0.0)
        np.testing.assert_allclose(self.ions.list_sources_grid[0], 7.0)
        np.testing.assert_allclose(self.ions.list_losses_grid[0], 0.0)

    def test_heating(self):
        chemistry = self.build([make_row(["A", "B"], ["C"], rate=1.0e-3, heat=2.0),
                                make_row(["C"], ["A"], rate=1.0e-2)])
        self.neutrals.initialize_density("A", 10.0)
        self.neutrals.initialize_density("B", 10.0)
        self.neutrals.initialize_density("C", 10.0)

        chemistry.calc_chemical_sources(self.neutrals, self.ions)

        np.testing.assert_allclose(chemistry.heating, 1.0e-3 * 100.0 * 2.0, rtol=1e-12)

    def test_densities_untouched(self):
        chemistry = self.build([make_row(["A", "B"], ["C"], rate=1.0)])
        self.neutrals.initialize_density("A", 3.0)
        self.neutrals.initialize_density("B", 4.0)
        before = [d.copy() for d in self.neutrals.list_density_grid]

        chemistry.calc_chemical_sources(self.neutrals, self.ions)

        for d0, d1 in zip(before, self.neutrals.list_density_grid):
            np.testing.assert_array_equal(d0, d1)

    def test_required_fields(self):
        chemistry = self.build([
            make_row(["A"], ["B"], rate=1.0, numerator=300.0, denominator="Ti", ftype=1,
                     piecewise="Te", vmin=0, vmax=1000),
            make_row(["A"], ["C"], rate=1.0, numerator=300.0, denominator="Ti", ftype=1),
        ])
        self.assertEqual(chemistry.required_fields(), ("Ti", "Te"))


class TestCalcChemistry(KineticsTestCase):

    neutral_species = ["O"]
    ion_species = ["O+"]

    def test_recombination_step(self):
        chemistry = self.build([make_row(["O+", "e-"], ["O", "hv"], rate=1.0e-12)])
        self.neutrals.initialize_density("O", 1.0e8)
        self.ions.initialize_density("O+", 1.0e6)

        chemistry.calc_chemistry(self.neutrals, self.ions, dt=1.0)

        # flux = 1e-12 * 1e6 * 1e6 = 1
        o_plus = 1.0e6 / (1.0 + 1.0 / 1.0e6 * 1.0)
        np.testing.assert_allclose(self.ions.density("O+"), o_plus, rtol=1e-12)
        np.testing.assert_allclose(self.neutrals.density("O"), 1.0e8 + 1.0, rtol=1e-12)
        np.testing.assert_allclose(self.ions.ne_grid, o_plus, rtol=1e-12)
        self.assertTrue(np.all(self.ions.density("O+") < 1.0e6))

    def test_photoionization_step(self):
        chemistry = self.build([make_row(["O+", "e-"], ["O"], rate=0.0)])
        self.neutrals.initialize_density("O", 1.0e8)
        self.ions.initialize_density("O+", 1.0e4)
        self.neutrals.list_ionization_grid[0][:, :, :] = 50.0
        self.ions.list_ionization_grid[0][:, :, :] = 50.0

        chemistry.calc_chemistry(self.neutrals, self.ions, dt=2.0)

        np.testing.assert_allclose(self.ions.density("O+"), 1.0e4 + 100.0, rtol=1e-12)
        np.testing.assert_allclose(self.neutrals.density("O"), 1.0e8 / (1.0 + 50.0 / 1.0e8 * 2.0), rtol=1e-12)
        np.testing.assert_allclose(self.ions.ne_grid, 1.0e4 + 100.0, rtol=1e-12)

    def test_negative_dt(self):
        chemistry = self.build([make_row(["O+", "e-"], ["O"], rate=1.0e-12)])
        with self.assertRaises(ValueError):
            chemistry.calc_chemistry(self.neutrals, self.ions, dt=-1.0)


class TestChemistryLoad(KineticsTestCase):

    def test_missing_table_aborts_load(self):
        config = ChemistryConfig(chemistry_file=os.path.join(self.test_dir, "nope.csv"))
        with self.assertRaises(ResourceError):
            Chemistry(self.neutrals, self.ions, config)

    def test_sequence_protocol(self):
        chemistry = self.build([make_row(["A"], ["B"], rate=1.0), make_row(["B"], ["C"], rate=2.0)])
        self.assertEqual(len(chemistry), 2)
        self.assertEqual([r.rate for r in chemistry], [1.0, 2.0])
        self.assertEqual(str(chemistry[1]), "B -> C")

    def test_display_reactions(self):
        chemistry = self.build([make_row(["A"], ["B"], rate=1.0)])
        with self.assertLogs("ionochem.chemistry.chemistry", level="INFO") as logs:
            chemistry.display_reactions()
        self.assertIn("A -> B", "\n".join(logs.output))


if __name__ == '__main__':
    unittest.main()
