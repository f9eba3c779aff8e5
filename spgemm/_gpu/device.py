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

from typing import Optional

import numpy as np
import wgpu

from spgemm._error import ResourceUnavailableError

__all__ = [
    'DeviceContext',
]

READ_ONLY_USAGE = wgpu.BufferUsage.STORAGE | wgpu.BufferUsage.COPY_DST
RESULT_USAGE = wgpu.BufferUsage.STORAGE | wgpu.BufferUsage.COPY_SRC | wgpu.BufferUsage.COPY_DST
STAGING_USAGE = wgpu.BufferUsage.MAP_READ | wgpu.BufferUsage.COPY_DST
UNIFORM_USAGE = wgpu.BufferUsage.UNIFORM | wgpu.BufferUsage.COPY_DST


class DeviceContext:
    """
    An explicitly owned GPU device and its submission queue.

    A context can serve any number of sequential multiplications.  It is
    not safe to submit from several threads at once; callers serialize
    concurrent use themselves.

    Parameters
    ----------
    device : wgpu.GPUDevice
        The device that owns every buffer and pipeline created through this
        context.
    queue : wgpu.GPUQueue, optional
        Submission queue.  Defaults to ``device.queue``.

    Examples
    --------
    .. code-block:: python

        >>> import spgemm
        >>> with spgemm.DeviceContext.acquire() as ctx:  # doctest: +SKIP
        ...     c = spgemm.gpu_multiply(a, b, context=ctx)
    """
    __module__ = 'spgemm'

    def __init__(self, device, queue=None):
        self.device = device
        self.queue = device.queue if queue is None else queue
        self.closed = False

    @classmethod
    def acquire(cls, power_preference: str = 'high-performance') -> 'DeviceContext':
        """
        Request an adapter and a device from the default wgpu backend.

        Raises
        ------
        ResourceUnavailableError
            If no adapter or device can be obtained.
        """
        try:
            adapter = wgpu.gpu.request_adapter_sync(power_preference=power_preference)
        except (RuntimeError, wgpu.GPUError) as e:
            raise ResourceUnavailableError(f'No GPU adapter available: {e}') from e
        if adapter is None:
            raise ResourceUnavailableError('No GPU adapter available.')
        try:
            device = adapter.request_device_sync()
        except (RuntimeError, wgpu.GPUError) as e:
            raise ResourceUnavailableError(f'Failed to create a GPU device: {e}') from e
        return cls(device)

    def _check_open(self):
        if self.closed:
            raise ResourceUnavailableError('The device context has been closed.')

    def compile(self, source: str, label: Optional[str] = None):
        """Compile WGSL ``source`` into a shader module.

        Raises
        ------
        ResourceUnavailableError
            If the source fails validation.
        """
        self._check_open()
        try:
            return self.device.create_shader_module(code=source, label=label)
        except wgpu.GPUError as e:
            raise ResourceUnavailableError(f'Kernel {label!r} failed to compile: {e}') from e

    def upload(self, array: np.ndarray, usage: int = READ_ONLY_USAGE, label: Optional[str] = None):
        """Create a buffer initialized with the bytes of ``array``."""
        self._check_open()
        data = array.tobytes() if isinstance(array, np.ndarray) else bytes(array)
        return self.device.create_buffer_with_data(data=data, usage=usage, label=label)

    def allocate(self, size: int, usage: int, label: Optional[str] = None):
        """Create a zero-initialized buffer of ``size`` bytes."""
        self._check_open()
        return self.device.create_buffer(size=size, usage=usage, label=label)

    def submit(self, command_buffers):
        self._check_open()
        self.queue.submit(list(command_buffers))

    def close(self):
        """Release the device.  Further use raises :class:`ResourceUnavailableError`."""
        if not self.closed:
            self.closed = True
            self.device.destroy()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self):
        state = 'closed' if self.closed else 'open'
        return f'DeviceContext({self.device!r}, {state})'
