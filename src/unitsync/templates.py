from __future__ import annotations

# Starter files written by `unitsync init`

EXAMPLE_SERVICE_TEMPLATE = """# Service rendered by unitsync from templates/app.service
# Learn more: https://www.freedesktop.org/software/systemd/man/systemd.service.html
# Placeholders (a name in curly braces) are filled from the variables of each [[services]] entry.

[Unit]
Description={description}
After=network.target

[Service]
Type=simple
User={user}
WorkingDirectory={workdir}
ExecStart={exec_start}

# Restart policy
Restart=on-failure
RestartSec=5s

[Install]
WantedBy=multi-user.target
"""

EXAMPLE_TASK_TEMPLATE = """# Oneshot task rendered by unitsync, triggered by its timer
# Learn more: https://www.freedesktop.org/software/systemd/man/systemd.service.html

[Unit]
Description={description}

[Service]
Type=oneshot
User={user}
ExecStart={exec_start}
"""

EXAMPLE_TIMER_TEMPLATE = """# Timer rendered by unitsync
# Learn more: https://www.freedesktop.org/software/systemd/man/systemd.timer.html

[Unit]
Description={description} timer

[Timer]
OnCalendar={schedule}
Persistent=true

[Install]
WantedBy=timers.target
"""

STARTER_TEMPLATES = {
    "app.service": EXAMPLE_SERVICE_TEMPLATE,
    "task.service": EXAMPLE_TASK_TEMPLATE,
    "task.timer": EXAMPLE_TIMER_TEMPLATE,
}
