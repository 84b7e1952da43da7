from .files import (
    parent_path,
    parse_df_output,
    parse_directory_listing,
    parse_file_info,
    parse_find_output,
    parse_ls_line,
    parse_storage_info,
)
from .logcat import (
    BriefGrammar,
    LineGrammar,
    LogcatParser,
    TaggedGrammar,
    ThreadTimeGrammar,
    parse_logcat_line,
    parse_logcat_output,
)
from .packages import (
    parse_package_dump,
    parse_package_list,
    parse_permissions,
    parse_top_package,
)
from .performance import (
    apply_cpu_speeds,
    parse_battery_info,
    parse_cpu_speeds,
    parse_cpu_stat,
    parse_flips_count,
    parse_meminfo,
)
from .processes import (
    find_processes,
    parse_process_list,
    parse_process_status,
    parse_running_services,
)
from .status import (
    SU_PATHS,
    find_su_binaries,
    parse_device_status,
    parse_loadavg,
    parse_mounts,
    parse_network_interfaces,
    parse_uid,
    parse_uptime,
)
from .system import (
    parse_battery_level,
    parse_logcat_buffers,
    parse_max_refresh_rate,
    parse_property,
    parse_screen_size,
    parse_storage,
)

__all__ = [
    "BriefGrammar",
    "LineGrammar",
    "SU_PATHS",
    "LogcatParser",
    "TaggedGrammar",
    "ThreadTimeGrammar",
    "apply_cpu_speeds",
    "find_processes",
    "find_su_binaries",
    "parent_path",
    "parse_battery_info",
    "parse_battery_level",
    "parse_cpu_speeds",
    "parse_cpu_stat",
    "parse_device_status",
    "parse_df_output",
    "parse_directory_listing",
    "parse_file_info",
    "parse_find_output",
    "parse_flips_count",
    "parse_loadavg",
    "parse_logcat_buffers",
    "parse_logcat_line",
    "parse_logcat_output",
    "parse_ls_line",
    "parse_max_refresh_rate",
    "parse_meminfo",
    "parse_mounts",
    "parse_network_interfaces",
    "parse_package_dump",
    "parse_package_list",
    "parse_permissions",
    "parse_process_list",
    "parse_process_status",
    "parse_property",
    "parse_running_services",
    "parse_screen_size",
    "parse_storage",
    "parse_storage_info",
    "parse_top_package",
    "parse_uid",
    "parse_uptime",
]
