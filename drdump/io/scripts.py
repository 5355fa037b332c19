"""
Scripts — monitoring script generators for the skb:kfree_skb tracepoint.

Both dialects embed the resolved drop-reason table so that the generated
script prints symbolic names instead of raw values.  Templates are fixed;
only the declaration block varies.
"""
from enum import Enum, unique
from typing import Mapping


@unique
class ScriptDialect(str, Enum):
    BPFTRACE = "bpftrace"
    STAP = "stap"


BPFTRACE_TEMPLATE = """\
#!/usr/bin/bpftrace

BEGIN
{{
    printf("Tracing dropped skbs... Hit Ctrl-C to end.\\n");
}}

tracepoint:skb:kfree_skb
{{
{reasons_def}
    @stack[ksym(args->location),@drop_reasons[args->reason]] = count();
    clear(@drop_reasons);
}}

interval:s:5
{{
    time("%F %T %z (%Z)\\n");
    print(@stack);
    printf("\\n");
    clear(@stack);
}}

END
{{
  clear(@stack);
}}"""

STAP_TEMPLATE = """\
#! /usr/bin/env stap

global skb_drop_reason
global drop_reasons

probe kernel.trace("kfree_skb") {{
    skb_drop_reason[$location, $reason] <<< 1;
}}

probe begin {{
    printf("Tracing dropped skbs... Hit Ctrl-C to end.\\n");
}}

# Report every 5 seconds
probe timer.sec(5)
{{
    printf("\\n%s", tz_ctime(gettimeofday_s()))
{reasons_def}
    printf("\\n%-35s%-35s%10s\\n","Drop","Location","Count");
    foreach([location, reason] in skb_drop_reason) {{
        printf("%-35s%-35s%10d\\n",symname(location),drop_reasons[reason],@count(skb_drop_reason[location, reason]))
    }}
    delete skb_drop_reason
}}"""

_DECLARATIONS = {
    ScriptDialect.BPFTRACE: '    @drop_reasons[{value}] = "{name}";\n',
    ScriptDialect.STAP: '    drop_reasons[{value}] = "{name}";\n',
}

_TEMPLATES = {
    ScriptDialect.BPFTRACE: BPFTRACE_TEMPLATE,
    ScriptDialect.STAP: STAP_TEMPLATE,
}


def declaration(dialect: ScriptDialect, value: int, name: str) -> str:
    """The line associating *value* with *name* in *dialect*, newline included."""
    return _DECLARATIONS[dialect].format(value=value, name=name)


def render_script(reasons: Mapping[int, str], dialect: ScriptDialect) -> str:
    """Build a complete monitoring script for *dialect*."""
    dialect = ScriptDialect(dialect)
    reasons_def = "".join(
        declaration(dialect, value, name) for value, name in reasons.items()
    )
    return _TEMPLATES[dialect].format(reasons_def=reasons_def)
