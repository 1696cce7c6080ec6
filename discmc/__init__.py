"""
Two-dimensional rigid-disc Monte Carlo sampler.

Objects are rigid clusters of circular atoms on a planar surface. The
package provides the geometry, force field, topology and configuration
models plus the Metropolis integrator and a replica-exchange coordinator.
"""

__version__ = "0.3.0"
