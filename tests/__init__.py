# Tests for atom_optics
#
# Test organization mirrors source structure:
#   - test_models.py:   data model (atoms, laser, problems, options, results)
#   - test_geometry.py: pairwise distances
#   - test_kernels.py:  interaction matrices
#   - test_dynamics.py: RHS evaluators and the integrator
#   - test_physics.py:  dispatch, steady states, time evolution
#   - test_config.py:   configuration management
#
# Running tests:
#   pytest tests/
#   pytest tests/test_kernels.py -v
