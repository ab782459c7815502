"""Hypothesis strategies for agentstage.

Provides strategies for file paths, file contents, buffer operation
sequences, and loop session budgets.
"""

from hypothesis import strategies as st

# Relative paths from a small pool so operations collide on the same keys
paths = st.sampled_from(["a.py", "src/b.ts", "docs/c.md", "d.txt"])

content_text = st.text(
    max_size=200,
    alphabet=st.characters(whitelist_categories=("L", "N", "P", "Z", "S")),
)

# Non-empty search text for find-and-replace
needle_text = st.text(
    min_size=1,
    max_size=20,
    alphabet=st.characters(whitelist_categories=("L", "N", "P")),
)

write_op = st.tuples(st.just("write"), paths, content_text, st.booleans())
delete_op = st.tuples(st.just("delete"), paths)
edit_op = st.tuples(st.just("edit"), paths, needle_text, content_text)

buffer_ops = st.lists(st.one_of(write_op, delete_op, edit_op), max_size=30)

budgets = st.fixed_dictionaries(
    {
        "max_continues": st.integers(min_value=0, max_value=20),
        "max_iterations_per_run": st.integers(min_value=1, max_value=100),
    }
)
