"""
Mutation testing configuration for mutmut.

Mutates the job engines and their shared core; skips code whose
mutations only change log text or packaging.
"""


def pre_mutation(context):
    """
    Hook called before each mutation.

    Skips low-value code patterns.
    """
    if 'tests/' in context.filename:
        context.skip = True

    if context.filename.endswith('__init__.py'):
        context.skip = True

    # CLI wiring is covered by argument-level tests only
    if '/cli/' in context.filename:
        context.skip = True

    line = context.current_source_line.strip()

    # Diagnostics text has no behavior of its own
    if line.startswith(('logger.', 'logging.', 'diagnostics.', 'self.log.')):
        context.skip = True

    if line.startswith(('f"', "f'")):
        context.skip = True

    if '"""' in line or "'''" in line:
        context.skip = True
