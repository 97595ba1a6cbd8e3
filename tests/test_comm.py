import numpy as np
import pytest

from blockmatmul.comm import World, create_grid_comms


def test_ring_send_recv():
    def body(comm):
        comm.send(comm.rank, (comm.rank + 1) % comm.size, 5)
        return comm.recv((comm.rank - 1) % comm.size, 5)

    assert World(4).run(body) == [3, 0, 1, 2]


def test_messages_with_same_tag_keep_order():
    def body(comm):
        if comm.rank == 0:
            for value in range(5):
                comm.send(value, 1, 1)
            return None
        return [comm.recv(0, 1) for _ in range(5)]

    assert World(2).run(body)[1] == list(range(5))


def test_sendrecv_shifts_arrays():
    def body(comm):
        block = np.full(3, comm.rank, dtype=np.float32)
        return comm.sendrecv(block, (comm.rank - 1) % comm.size, (comm.rank + 1) % comm.size, 9)

    results = World(3).run(body)
    for rank, block in enumerate(results):
        np.testing.assert_array_equal(block, np.full(3, (rank + 1) % 3))


def test_send_copies_the_object():
    def body(comm):
        if comm.rank == 0:
            data = [1, 2]
            comm.send(data, 1)
            data.append(3)
            return data
        return comm.recv(0)

    sent, received = World(2).run(body)
    assert sent == [1, 2, 3]
    assert received == [1, 2]


def test_bcast_scatter_gather():
    def body(comm):
        value = comm.bcast("hello" if comm.rank == 2 else None, 2)
        part = comm.scatter([i * 10 for i in range(comm.size)] if comm.rank == 0 else None, 0)
        everyone = comm.gather(part + comm.rank, 1)
        return value, part, everyone

    results = World(3).run(body)
    assert [value for value, _, _ in results] == ["hello"] * 3
    assert [part for _, part, _ in results] == [0, 10, 20]
    assert results[1][2] == [0, 11, 22]
    assert results[0][2] is None and results[2][2] is None


def test_scatter_wrong_length_raises():
    def body(comm):
        return comm.scatter([1] if comm.rank == 0 else None, 0)

    with pytest.raises(ValueError):
        World(2).run(body)


def test_split_orders_by_key():
    def body(comm):
        sub = comm.split(comm.rank % 2, -comm.rank)
        return sub.rank, sub.size, sub.gather(comm.rank, 0)

    results = World(4).run(body)
    assert [rank for rank, _, _ in results] == [1, 1, 0, 0]
    assert all(size == 2 for _, size, _ in results)
    assert results[2][2] == [2, 0]
    assert results[3][2] == [3, 1]


def test_split_with_no_color_gives_none():
    def body(comm):
        sub = comm.split(None if comm.rank == 1 else 0, comm.rank)
        return None if sub is None else sub.size

    assert World(3).run(body) == [2, None, 2]


def test_create_grid_comms():
    def body(comm):
        row, col = create_grid_comms(comm, 2)
        leader = row.bcast(comm.rank, 0)
        top = col.bcast(comm.rank, 0)
        return row.rank, col.rank, leader, top

    results = World(4).run(body)
    for rank, (row_rank, col_rank, leader, top) in enumerate(results):
        assert row_rank == rank % 2
        assert col_rank == rank // 2
        assert leader == rank - rank % 2
        assert top == rank % 2


def test_error_in_one_rank_propagates():
    def body(comm):
        if comm.rank == 1:
            raise KeyError("boom")
        return comm.recv(1)

    with pytest.raises(KeyError):
        World(2).run(body)


def test_invalid_peer_and_tag():
    def bad_dest(comm):
        comm.send(1, comm.size)

    def bad_tag(comm):
        comm.send(1, 0, -3)

    with pytest.raises(ValueError):
        World(2).run(bad_dest)
    with pytest.raises(ValueError):
        World(1).run(bad_tag)


def test_world_needs_a_rank():
    with pytest.raises(ValueError):
        World(0)


def test_recv_times_out():
    world = World(1)
    world.timeout = 0.05

    def body(comm):
        return comm.recv(0, 1)

    with pytest.raises(TimeoutError):
        world.run(body)


def test_run_passes_arguments():
    def body(comm, base, factor):
        return base + comm.rank * factor

    assert World(3).run(body, 1, 2) == [1, 3, 5]