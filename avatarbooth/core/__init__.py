# Core package - configuration and logging
