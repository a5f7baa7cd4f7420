#
# Copyright 2026 Hannes Holey
#
# ### MIT License
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
#
from mpi4py import MPI
import numpy as np
import numpy.typing as npt

IntArray = npt.NDArray[np.signedinteger]


class ZonePartition:
    """
    Ownership of mesh zones across MPI processes.

    Global DOF vectors are replicated on every process; each process only
    integrates over the zones it owns. Zone contributions are combined with
    a sum-allreduce and the time step estimate with a min-allreduce.

    Parameters
    ----------
    nb_zones : int
        Global number of zones.
    comm : MPI.Comm, optional
        Communicator (default: MPI.COMM_SELF, i.e. no distribution).
    part : int, optional
        Index of the owned part (default: rank in ``comm``).
    nb_parts : int, optional
        Number of parts (default: size of ``comm``).
    """

    def __init__(self, nb_zones: int,
                 comm: MPI.Comm | None = None,
                 part: int | None = None,
                 nb_parts: int | None = None):

        self._mpi_comm = MPI.COMM_SELF if comm is None else comm
        self._nb_zones = nb_zones
        self._part = self._mpi_comm.Get_rank() if part is None else part
        self._nb_parts = self._mpi_comm.Get_size() if nb_parts is None else nb_parts

        if not 0 <= self._part < self._nb_parts:
            raise ValueError(f"Invalid part {self._part} of {self._nb_parts}")

        # Contiguous chunks of zones, balanced to within one zone
        chunks = np.array_split(np.arange(nb_zones), self._nb_parts)
        self._zones = chunks[self._part]

    # ---------------------------
    # MPI properties
    # ---------------------------

    @property
    def comm(self) -> MPI.Comm:
        return self._mpi_comm

    @property
    def rank(self) -> int:
        """MPI rank of this process."""
        return self._mpi_comm.Get_rank()

    @property
    def size(self) -> int:
        """Total number of MPI processes."""
        return self._mpi_comm.Get_size()

    @property
    def part(self) -> int:
        return self._part

    @property
    def nb_parts(self) -> int:
        return self._nb_parts

    @property
    def zones(self) -> IntArray:
        """Global indices of the locally owned zones."""
        return self._zones

    @property
    def nb_local_zones(self) -> int:
        return len(self._zones)

    @property
    def nb_global_zones(self) -> int:
        return self._nb_zones

    # ---------------------------
    # Reductions
    # ---------------------------

    def sum_inplace(self, arr: np.ndarray) -> np.ndarray:
        """Sum zone contributions of a replicated array over all processes."""
        if self.size > 1:
            self._mpi_comm.Allreduce(MPI.IN_PLACE, arr, op=MPI.SUM)
        return arr

    def allreduce_sum(self, value):
        return self._mpi_comm.allreduce(value, op=MPI.SUM)

    def allreduce_min(self, value):
        return self._mpi_comm.allreduce(value, op=MPI.MIN)
