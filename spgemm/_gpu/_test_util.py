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

"""In-process stand-in for a wgpu device.

``FakeDevice`` implements the subset of the ``wgpu.GPUDevice`` surface the
GPU pipeline uses and executes ``sparse_mul.wgsl`` on the host, one row per
invocation, reading its operands through the bind groups exactly as the
kernel does.  Knobs on the device inject the failures the pipeline must
detect.
"""

import itertools
import re

import numpy as np
import pytest
import wgpu

from .layout import (
    RECORD_SIZE,
    BumpAllocator,
    decode_counter,
    encode_counter,
    encode_records,
    unpack_params,
)

__all__ = [
    'FakeDevice',
    'requires_gpu',
]


def _gpu_available() -> bool:
    try:
        return wgpu.gpu.request_adapter_sync() is not None
    except (OSError, RuntimeError, wgpu.GPUError):
        return False


requires_gpu = pytest.mark.skipif(not _gpu_available(), reason='No GPU adapter available')


class FakeBuffer:
    def __init__(self, device, size, usage, label=None, data=None):
        self.device = device
        self.size = size
        self.usage = usage
        self.label = label
        self.data = bytearray(size) if data is None else bytearray(data)
        self.mapped = False
        self.destroyed = False

    async def map_async(self, mode, offset=0, size=None):
        if self.device.fail_map:
            raise RuntimeError(f'map of {self.label} failed')
        if not self.usage & wgpu.BufferUsage.MAP_READ:
            raise RuntimeError(f'{self.label} is not mappable')
        self.mapped = True

    def read_mapped(self, buffer_offset=None, size=None, copy=True):
        assert self.mapped, f'{self.label} is not mapped'
        return memoryview(bytes(self.data))

    def unmap(self):
        self.mapped = False

    def destroy(self):
        self.destroyed = True


class FakeShaderModule:
    def __init__(self, code, label=None):
        match = re.search(r'@workgroup_size\((\d+)\)', code)
        assert match is not None, 'kernel declares no workgroup size'
        assert re.search(r'\bfn main\s*\(', code), 'kernel has no main entry point'
        self.workgroup_size = int(match.group(1))
        self.label = label


class FakeBindGroup:
    def __init__(self, layout, entries, label=None):
        self.layout = layout
        self.buffers = {entry['binding']: entry['resource']['buffer'] for entry in entries}
        self.label = label

    def array(self, binding, dtype):
        return np.frombuffer(bytes(self.buffers[binding].data), dtype=dtype)


class FakeObject:
    def __init__(self, **kwargs):
        self.__dict__.update(kwargs)


class FakeComputePass:
    def __init__(self, encoder):
        self.encoder = encoder
        self.pipeline = None
        self.groups = {}

    def set_pipeline(self, pipeline):
        self.pipeline = pipeline

    def set_bind_group(self, index, bind_group, *args, **kwargs):
        self.groups[index] = bind_group

    def dispatch_workgroups(self, x, y=1, z=1):
        self.encoder.commands.append(('dispatch', self.pipeline, dict(self.groups), (x, y, z)))

    def end(self):
        pass


class FakeCommandEncoder:
    def __init__(self):
        self.commands = []

    def begin_compute_pass(self, label=None):
        return FakeComputePass(self)

    def copy_buffer_to_buffer(self, source, source_offset, destination, destination_offset, size):
        self.commands.append(('copy', source, source_offset, destination, destination_offset, size))

    def finish(self, label=None):
        return list(self.commands)


class FakeQueue:
    def __init__(self, device):
        self.device = device

    def submit(self, command_buffers):
        for commands in command_buffers:
            for command in commands:
                if command[0] == 'dispatch':
                    self.device.run_kernel(*command[1:])
                else:
                    _, src, src_offset, dst, dst_offset, size = command
                    dst.data[dst_offset:dst_offset + size] = src.data[src_offset:src_offset + size]


def _row_candidates(i, a_ptr, a_col, a_val, b_ptr, b_col, b_val):
    # Every product of row i in expansion order, as the kernel emits them.
    for p in range(a_ptr[i], a_ptr[i + 1]):
        k = a_col[p]
        for q in range(b_ptr[k], b_ptr[k + 1]):
            yield int(b_col[q]), np.float32(a_val[p] * b_val[q])


class FakeDevice:
    """
    Host-executed device.

    Parameters
    ----------
    fail_compile : bool
        Reject every shader module with ``wgpu.GPUValidationError``.
    fail_map : bool
        Fail every staging-buffer mapping.
    counter_bias : int
        Start the kernel's slot cursor at this value, as if that many
        entries had already been emitted.
    reverse_rows : bool
        Run invocations from the last row to the first.
    candidate_limit : int, optional
        Stop each invocation after this many products, the way an adapter
        that caps loop iterations cuts a long row short.
    """

    def __init__(self, fail_compile=False, fail_map=False, counter_bias=0, reverse_rows=False,
                 candidate_limit=None):
        self.fail_compile = fail_compile
        self.fail_map = fail_map
        self.counter_bias = counter_bias
        self.reverse_rows = reverse_rows
        self.candidate_limit = candidate_limit
        self.queue = FakeQueue(self)
        self.buffers = []
        self.dispatches = []
        self.destroyed = False

    def create_shader_module(self, code, label=None, **kwargs):
        if self.fail_compile:
            raise wgpu.GPUValidationError('shader validation failed')
        return FakeShaderModule(code, label)

    def create_buffer(self, size, usage, label=None, **kwargs):
        buffer = FakeBuffer(self, size, usage, label)
        self.buffers.append(buffer)
        return buffer

    def create_buffer_with_data(self, data, usage, label=None):
        buffer = FakeBuffer(self, len(data), usage, label, data)
        self.buffers.append(buffer)
        return buffer

    def create_bind_group_layout(self, entries, label=None):
        return FakeObject(entries=entries, label=label)

    def create_bind_group(self, layout, entries, label=None):
        return FakeBindGroup(layout, entries, label)

    def create_pipeline_layout(self, bind_group_layouts, label=None):
        return FakeObject(bind_group_layouts=bind_group_layouts, label=label)

    def create_compute_pipeline(self, layout, compute, label=None):
        assert compute['entry_point'] == 'main'
        assert len(layout.bind_group_layouts) == 3
        return FakeObject(layout=layout, module=compute['module'], label=label)

    def create_command_encoder(self, label=None):
        return FakeCommandEncoder()

    def destroy(self):
        self.destroyed = True

    def run_kernel(self, pipeline, groups, grid):
        self.dispatches.append(grid)
        a, b, result = groups[0], groups[1], groups[2]
        a_arrays = a.array(0, '<u4'), a.array(1, '<u4'), a.array(2, '<f4')
        b_arrays = b.array(0, '<u4'), b.array(1, '<u4'), b.array(2, '<f4')
        counter, records = result.buffers[0], result.buffers[1]
        rows, capacity, row_stride = unpack_params(result.buffers[2].data)

        allocator = BumpAllocator(capacity)
        allocator.cursor = decode_counter(counter.data) + self.counter_bias
        x, y, _ = grid
        invocations = [
            gy * row_stride + gx
            for gy in range(y)
            for gx in range(x * pipeline.module.workgroup_size)
        ]
        if self.reverse_rows:
            invocations.reverse()
        for i in invocations:
            if i >= rows:
                continue
            candidates = _row_candidates(i, *a_arrays, *b_arrays)
            for col, value in itertools.islice(candidates, self.candidate_limit):
                slot = allocator.claim()
                if slot is not None:
                    offset = slot * RECORD_SIZE
                    records.data[offset:offset + RECORD_SIZE] = encode_records([i], [col], [value])
        counter.data[:] = encode_counter(allocator.cursor)
