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

import asyncio
import enum
import math
from typing import Optional

import wgpu

from spgemm._coo import COO
from spgemm._csr import CSR, check_product_shapes, predict_nnz
from spgemm._error import (
    ContractViolationError,
    DeviceFailureError,
    PipelineStateError,
    ResourceUnavailableError,
)
from spgemm.config import get_shader_path
from .device import (
    DeviceContext,
    READ_ONLY_USAGE,
    RESULT_USAGE,
    STAGING_USAGE,
    UNIFORM_USAGE,
)
from .layout import (
    COUNTER_SIZE,
    PARAMS_SIZE,
    RECORD_SIZE,
    U32_LIMIT,
    BumpAllocator,
    check_record_layout,
    decode_counter,
    decode_records,
    encode_counter,
    pack_csr,
    pack_params,
)

__all__ = [
    'PipelineState',
    'GPUSparseMultiplier',
    'gpu_multiply',
    'gpu_multiply_async',
]

WORKGROUP_SIZE = 64
MAX_GROUPS_PER_DIM = 65535


class PipelineState(enum.Enum):
    """Stages of a :class:`GPUSparseMultiplier`, in execution order."""
    __module__ = 'spgemm'

    UNINITIALIZED = 0
    DEVICE_READY = 1
    BUFFERS_LOADED = 2
    DISPATCHED = 3
    RESULT_MAPPED = 4
    DONE = 5


def _dispatch_grid(rows: int):
    groups = max(1, math.ceil(rows / WORKGROUP_SIZE))
    x = min(groups, MAX_GROUPS_PER_DIM)
    y = math.ceil(groups / x)
    return x, y, x * WORKGROUP_SIZE


def _storage_entry(binding: int, read_only: bool):
    kind = wgpu.BufferBindingType.read_only_storage if read_only else wgpu.BufferBindingType.storage
    return {
        'binding': binding,
        'visibility': wgpu.ShaderStage.COMPUTE,
        'buffer': {'type': kind, 'has_dynamic_offset': False, 'min_binding_size': 0},
    }


def _buffer_entry(binding: int, buffer, size: int):
    return {'binding': binding, 'resource': {'buffer': buffer, 'offset': 0, 'size': size}}


class GPUSparseMultiplier:
    """
    One sparse product ``a @ b`` executed by a compute kernel.

    The multiplier walks a fixed sequence of steps, each advancing
    :attr:`state` by one :class:`PipelineState`:

    1. :meth:`initialize` checks dimensions and compiles the kernel.
    2. :meth:`load_buffers` uploads the operands, sizes the result from
       :func:`~spgemm.predict_nnz` and creates the bind groups.
    3. :meth:`dispatch` records and submits one command buffer that runs the
       kernel and copies the result into host-visible staging buffers.
    4. :meth:`read_result` maps the counter and record staging buffers
       concurrently and waits for both.
    5. :meth:`finish` checks the record count against the prediction and
       merges the records into a :class:`~spgemm.COO`.

    A step called out of order raises :class:`~spgemm.PipelineStateError`.
    The multiplier owns every buffer it creates and releases them in
    :meth:`finish` or :meth:`release`.  The operands are never modified.

    Parameters
    ----------
    a : CSR
        Left operand of shape ``(m, k)``.
    b : CSR
        Right operand of shape ``(k, n)``.
    context : DeviceContext
        Device used for every allocation and submission.
    shader_path : str, optional
        WGSL kernel source.  Defaults to :func:`spgemm.config.get_shader_path`.

    Examples
    --------
    .. code-block:: python

        >>> import spgemm
        >>> with spgemm.DeviceContext.acquire() as ctx:  # doctest: +SKIP
        ...     result = spgemm.GPUSparseMultiplier(a, b, ctx).multiply()
    """
    __module__ = 'spgemm'

    def __init__(self, a: CSR, b: CSR, context: DeviceContext, *, shader_path: Optional[str] = None):
        if not isinstance(a, CSR) or not isinstance(b, CSR):
            raise TypeError(
                f'Both operands must be CSR matrices, got {type(a).__name__} and {type(b).__name__}'
            )
        self.a = a
        self.b = b
        self.context = context
        self.shader_path = shader_path
        self.state = PipelineState.UNINITIALIZED
        self.capacity = 0
        self.allocator: Optional[BumpAllocator] = None
        self._module = None
        self._buffers = {}
        self._layouts = []
        self._groups = []
        self._mapped = None
        self._records_size = 0

    def _expect(self, state: PipelineState, step: str):
        if self.state is not state:
            raise PipelineStateError(
                f'{step}() requires state {state.name}, but the pipeline is in {self.state.name}.'
            )

    @property
    def shape(self):
        return self.a.shape[0], self.b.shape[1]

    def initialize(self):
        """Check operands, verify the record layout, then read and compile the kernel.

        Raises
        ------
        DimensionMismatchError
            If ``a.shape[1] != b.shape[0]``.  No device object is touched.
        ResourceUnavailableError
            If the kernel source is missing or fails to compile.
        """
        self._expect(PipelineState.UNINITIALIZED, 'initialize')
        check_product_shapes(self.a.shape, self.b.shape)
        check_record_layout()
        path = self.shader_path or get_shader_path()
        try:
            with open(path, 'r', encoding='utf-8') as f:
                source = f.read()
        except OSError as e:
            raise ResourceUnavailableError(f'Cannot read kernel source {path}: {e}') from e
        self._module = self.context.compile(source, label='sparse_mul')
        self.state = PipelineState.DEVICE_READY

    def _upload_operand(self, csr: CSR, name: str):
        row_ptr, col_idx, values = pack_csr(csr, name)
        buffers = [
            self.context.upload(row_ptr, READ_ONLY_USAGE, label=f'{name}.row_ptr'),
            self.context.upload(col_idx, READ_ONLY_USAGE, label=f'{name}.col_idx'),
            self.context.upload(values, READ_ONLY_USAGE, label=f'{name}.values'),
        ]
        sizes = [row_ptr.nbytes, col_idx.nbytes, values.nbytes]
        layout = self.context.device.create_bind_group_layout(
            entries=[_storage_entry(i, read_only=True) for i in range(3)],
            label=f'{name}.layout',
        )
        group = self.context.device.create_bind_group(
            layout=layout,
            entries=[_buffer_entry(i, buf, size) for i, (buf, size) in enumerate(zip(buffers, sizes))],
            label=f'{name}.group',
        )
        for suffix, buf in zip(('row_ptr', 'col_idx', 'values'), buffers):
            self._buffers[f'{name}.{suffix}'] = buf
        return layout, group

    def load_buffers(self):
        """Upload operands, allocate result and staging buffers, build bind groups.

        Raises
        ------
        ResourceUnavailableError
            If the operands or the predicted result do not fit 32-bit device
            indices.
        """
        self._expect(PipelineState.DEVICE_READY, 'load_buffers')
        self.capacity = predict_nnz(self.a, self.b)
        if self.capacity >= U32_LIMIT:
            raise ResourceUnavailableError(
                f'Predicted {self.capacity} result entries exceed 32-bit device indices.'
            )
        self.allocator = BumpAllocator(self.capacity)
        layout_a, group_a = self._upload_operand(self.a, 'a')
        layout_b, group_b = self._upload_operand(self.b, 'b')

        records_size = self._records_size = max(self.capacity, 1) * RECORD_SIZE
        _, _, row_stride = _dispatch_grid(self.a.shape[0])
        ctx = self.context
        counter = ctx.upload(encode_counter(0), RESULT_USAGE, label='result.counter')
        records = ctx.allocate(records_size, RESULT_USAGE, label='result.records')
        params = ctx.upload(
            pack_params(self.a.shape[0], self.capacity, row_stride),
            UNIFORM_USAGE,
            label='result.params',
        )
        self._buffers.update({
            'result.counter': counter,
            'result.records': records,
            'result.params': params,
            'staging.counter': ctx.allocate(COUNTER_SIZE, STAGING_USAGE, label='staging.counter'),
            'staging.records': ctx.allocate(records_size, STAGING_USAGE, label='staging.records'),
        })

        layout_c = ctx.device.create_bind_group_layout(
            entries=[
                _storage_entry(0, read_only=False),
                _storage_entry(1, read_only=False),
                {
                    'binding': 2,
                    'visibility': wgpu.ShaderStage.COMPUTE,
                    'buffer': {
                        'type': wgpu.BufferBindingType.uniform,
                        'has_dynamic_offset': False,
                        'min_binding_size': PARAMS_SIZE,
                    },
                },
            ],
            label='result.layout',
        )
        group_c = ctx.device.create_bind_group(
            layout=layout_c,
            entries=[
                _buffer_entry(0, counter, COUNTER_SIZE),
                _buffer_entry(1, records, records_size),
                _buffer_entry(2, params, PARAMS_SIZE),
            ],
            label='result.group',
        )
        self._layouts = [layout_a, layout_b, layout_c]
        self._groups = [group_a, group_b, group_c]
        self.state = PipelineState.BUFFERS_LOADED

    def dispatch(self):
        """Build the compute pipeline, record the kernel and the staging copies, submit."""
        self._expect(PipelineState.BUFFERS_LOADED, 'dispatch')
        device = self.context.device
        pipeline_layout = device.create_pipeline_layout(bind_group_layouts=self._layouts, label='sparse_mul')
        pipeline = device.create_compute_pipeline(
            layout=pipeline_layout,
            compute={'module': self._module, 'entry_point': 'main'},
            label='sparse_mul',
        )
        groups_x, groups_y, _ = _dispatch_grid(self.a.shape[0])

        encoder = device.create_command_encoder(label='sparse_mul')
        compute_pass = encoder.begin_compute_pass(label='sparse_mul')
        compute_pass.set_pipeline(pipeline)
        for index, group in enumerate(self._groups):
            compute_pass.set_bind_group(index, group)
        compute_pass.dispatch_workgroups(groups_x, groups_y, 1)
        compute_pass.end()
        buffers = self._buffers
        encoder.copy_buffer_to_buffer(buffers['result.counter'], 0, buffers['staging.counter'], 0, COUNTER_SIZE)
        encoder.copy_buffer_to_buffer(
            buffers['result.records'], 0, buffers['staging.records'], 0, self._records_size
        )
        self.context.submit([encoder.finish()])
        self.state = PipelineState.DISPATCHED

    @staticmethod
    async def _map(buffer, name: str) -> bytes:
        try:
            await buffer.map_async(wgpu.MapMode.READ)
            data = bytes(buffer.read_mapped())
        except Exception as e:
            raise DeviceFailureError(f'Mapping the {name} staging buffer failed: {e}') from e
        buffer.unmap()
        return data

    async def read_result(self):
        """Map both staging buffers and wait until both mappings complete.

        Raises
        ------
        DeviceFailureError
            If either mapping fails.
        """
        self._expect(PipelineState.DISPATCHED, 'read_result')
        counter, records = await asyncio.gather(
            self._map(self._buffers['staging.counter'], 'counter'),
            self._map(self._buffers['staging.records'], 'records'),
        )
        self._mapped = counter, records
        self.state = PipelineState.RESULT_MAPPED

    def finish(self) -> COO:
        """Decode the mapped result into a COO of shape ``(a.rows, b.cols)``.

        The kernel writes one record per candidate product, so the record
        count must equal the predicted capacity exactly.  Records sharing a
        ``(row, col)`` are summed; the result is sorted by ``(row, col)``.

        Raises
        ------
        DeviceFailureError
            If the kernel emitted more or fewer records than predicted, or
            the read-back bytes are inconsistent.
        """
        self._expect(PipelineState.RESULT_MAPPED, 'finish')
        counter, records = self._mapped
        try:
            count = self.allocator.resolve(decode_counter(counter), exact=True)
            rows, cols, values = decode_records(records, count)
            try:
                result = COO(rows, cols, values, shape=self.shape).sum_duplicates()
            except ContractViolationError as e:
                raise DeviceFailureError(f'Kernel produced an invalid result: {e}') from e
        finally:
            self.release()
        self.state = PipelineState.DONE
        return result

    def release(self):
        """Destroy every buffer this multiplier created."""
        for buffer in self._buffers.values():
            buffer.destroy()
        self._buffers = {}
        self._groups = []
        self._mapped = None

    async def multiply_async(self) -> COO:
        """Run every remaining step and return the product."""
        try:
            self.initialize()
            self.load_buffers()
            self.dispatch()
            await self.read_result()
        except Exception:
            self.release()
            raise
        return self.finish()

    def multiply(self) -> COO:
        """Synchronous wrapper around :meth:`multiply_async`.

        Starts its own event loop, so it cannot be called from a coroutine;
        await :meth:`multiply_async` there instead.
        """
        return asyncio.run(self.multiply_async())


def gpu_multiply(a: CSR, b: CSR, context: Optional[DeviceContext] = None, shader_path: Optional[str] = None) -> COO:
    """
    Multiply two CSR matrices on the GPU.

    This call runs its own event loop.  From async code use
    :func:`gpu_multiply_async`.

    Parameters
    ----------
    a : CSR
        Left operand of shape ``(m, k)``.
    b : CSR
        Right operand of shape ``(k, n)``.
    context : DeviceContext, optional
        Device to run on.  If omitted, one is acquired for this call and
        released afterwards.
    shader_path : str, optional
        WGSL kernel source override.

    Returns
    -------
    COO
        The product with one entry per structurally non-zero ``(row, col)``,
        sorted by ``(row, col)``.  Products are computed in ``float32``.

    Raises
    ------
    DimensionMismatchError
        If ``a.shape[1] != b.shape[0]``.  Checked before any device is
        acquired.
    ResourceUnavailableError
        If no device is available or the kernel cannot be compiled.
    DeviceFailureError
        If the result cannot be read back or does not hold exactly the
        predicted number of records.
    """
    check_product_shapes(a.shape, b.shape)
    if context is not None:
        return GPUSparseMultiplier(a, b, context, shader_path=shader_path).multiply()
    with DeviceContext.acquire() as ctx:
        return GPUSparseMultiplier(a, b, ctx, shader_path=shader_path).multiply()


async def gpu_multiply_async(
    a: CSR,
    b: CSR,
    context: Optional[DeviceContext] = None,
    shader_path: Optional[str] = None,
) -> COO:
    """Coroutine form of :func:`gpu_multiply` for callers already inside an event loop."""
    check_product_shapes(a.shape, b.shape)
    if context is not None:
        return await GPUSparseMultiplier(a, b, context, shader_path=shader_path).multiply_async()
    with DeviceContext.acquire() as ctx:
        return await GPUSparseMultiplier(a, b, ctx, shader_path=shader_path).multiply_async()
