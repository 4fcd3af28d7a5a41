from dataclasses import dataclass

from gatekeep.simplestack import SimpleLockStack


@dataclass(eq=False)
class Item:
    index: int = 0


def all_different(*values):
    return len({id(v) for v in values}) == len(values)


def test_unique():
    stack = SimpleLockStack(10, 40, Item)
    values = [stack.pop() for _ in range(10)]
    assert stack.active == 10

    value1 = stack.pop()
    value1.index = stack.active
    value2 = stack.pop()
    value2.index = stack.active
    value3 = stack.pop()
    value3.index = stack.active
    assert all_different(value1, value2, value3)
    assert stack.active == 13

    for v in values:
        stack.push(v)
    assert len(stack) == 10
    assert stack.capacity == 10

    stack.push(value1)
    stack.push(value2)
    stack.push(value3)
    assert stack.capacity == 13

    value1 = stack.pop()
    value2 = stack.pop()
    value3 = stack.pop()
    assert all_different(value1, value2, value3)


def test_limits():
    stack = SimpleLockStack(10, 20, Item)
    values = [stack.pop() for _ in range(50)]
    assert stack.active == 50
    for v in values:
        stack.push(v)
    assert stack.capacity == 20
    assert len(stack) == 20
    assert stack.active == 30


def test_lifo_order():
    stack = SimpleLockStack(1, 10, Item)
    first, second = Item(1), Item(2)
    stack.push(first)
    stack.push(second)
    assert stack.pop() is second
    assert stack.pop() is first


def test_str():
    stack = SimpleLockStack(3, 5, Item)
    stack.pop()
    assert str(stack) == "SS: Capacity:3 Active:1 Stored:2"


def test_empty_start():
    stack = SimpleLockStack(0, 5, Item)
    assert len(stack) == 0
    assert stack.capacity == 0
    item = stack.pop()
    assert isinstance(item, Item)
    assert stack.active == 1
    stack.push(item)
    assert len(stack) == 1
    assert stack.active == 0
    assert stack.pop() is item


def test_push_calls_destroy():
    class Resource:
        def __init__(self):
            self.destroyed = 0

        def destroy(self):
            self.destroyed += 1

    stack = SimpleLockStack(1, 4, Resource)
    res = stack.pop()
    stack.push(res)
    assert res.destroyed == 1


def test_no_creator_returns_none_when_empty():
    stack = SimpleLockStack(0, 2, None)
    assert stack.pop() is None
    assert stack.active == 1