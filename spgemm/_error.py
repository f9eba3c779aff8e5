# Copyright 2025 BrainX Ecosystem Limited. All Rights Reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

# -*- coding: utf-8 -*-


__all__ = [
    'SpGEMMError',
    'ContractViolationError',
    'DimensionMismatchError',
    'ResourceUnavailableError',
    'DeviceFailureError',
    'MalformedInputError',
    'PipelineStateError',
]


class SpGEMMError(Exception):
    """Base exception for all errors raised by spgemm.

    Catch this exception to handle any failure of a sparse product,
    regardless of whether it originated on the CPU engine, the GPU
    pipeline, or the MatrixMarket reader.

    Parameters
    ----------
    message : str
        A human-readable description of the error.

    See Also
    --------
    ContractViolationError : Invalid operands or malformed matrix arrays.
    DeviceFailureError : Fatal failure of a GPU readback.
    """
    __module__ = 'spgemm'


class ContractViolationError(SpGEMMError, ValueError):
    """Raised when the arrays of a sparse matrix break its structural contract.

    Examples include a row-pointer array of the wrong length, a decreasing
    row pointer, parallel arrays of unequal length, or a row/column index
    outside the declared shape.  The check happens when the matrix is
    constructed, never halfway through a multiplication.

    Parameters
    ----------
    message : str
        A human-readable description naming the violated property.

    Examples
    --------
    .. code-block:: python

        >>> import spgemm
        >>> spgemm.COO([0, 5], [0, 0], [1., 2.], shape=(2, 2))  # doctest: +SKIP
        Traceback (most recent call last):
            ...
        spgemm.ContractViolationError: row index 5 out of range for shape (2, 2)
    """
    __module__ = 'spgemm'


class DimensionMismatchError(ContractViolationError):
    """Raised when two operands cannot be multiplied.

    The inner dimensions of ``a @ b`` must agree, i.e.
    ``a.shape[1] == b.shape[0]``.  Every multiplication path checks this
    eagerly, before allocating output buffers or touching a device.

    Parameters
    ----------
    message : str
        A human-readable description including both shapes.

    Examples
    --------
    .. code-block:: python

        >>> import numpy as np
        >>> import spgemm
        >>> a = spgemm.CSR.fromdense(np.ones((2, 3)))
        >>> a.product(a)  # doctest: +SKIP
        Traceback (most recent call last):
            ...
        spgemm.DimensionMismatchError: cannot multiply (2, 3) by (2, 3)
    """
    __module__ = 'spgemm'


class ResourceUnavailableError(SpGEMMError, RuntimeError):
    """Raised when a compute resource cannot be acquired.

    This covers a missing GPU adapter or device, a kernel source file that
    does not exist, a kernel that fails to compile, and operands that do
    not fit the 32-bit index layout used on the device.  The call is
    aborted; there is no retry and no fallback to the CPU engine.

    Parameters
    ----------
    message : str
        A human-readable description of the unavailable resource.
    """
    __module__ = 'spgemm'


class DeviceFailureError(SpGEMMError, RuntimeError):
    """Raised when the device fails after work has been submitted.

    Mapping a staging buffer can fail, the mapped region can have an
    unexpected size, or the kernel can claim more result slots than the
    predicted capacity.  All of these are fatal for the call: no partial
    result is returned.

    Parameters
    ----------
    message : str
        A human-readable description of the failure.

    See Also
    --------
    ResourceUnavailableError : Failures that happen before submission.
    """
    __module__ = 'spgemm'


class MalformedInputError(SpGEMMError, ValueError):
    """Raised when a MatrixMarket file cannot be parsed.

    Parameters
    ----------
    message : str
        A description of the problem that names the file, followed by the
        parser's own message.

    Examples
    --------
    .. code-block:: python

        >>> import spgemm
        >>> spgemm.read_mtx('broken.mtx')  # doctest: +SKIP
        Traceback (most recent call last):
            ...
        spgemm.MalformedInputError: broken.mtx: ...
    """
    __module__ = 'spgemm'


class PipelineStateError(SpGEMMError, RuntimeError):
    """Raised when a GPU pipeline step is invoked out of order.

    :class:`~spgemm.GPUSparseMultiplier` advances through a fixed sequence
    of states.  Each step may only be called from the state immediately
    preceding it.

    Parameters
    ----------
    message : str
        A description naming the current and the required state.
    """
    __module__ = 'spgemm'
