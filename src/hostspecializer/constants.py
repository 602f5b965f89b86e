"""Names and command templates shared across HostSpecializer services."""

SQUASHFS_EXTENSIONS = (".squashfs", ".sfs", ".sqsh", ".img", ".fs")
ZIP_EXTENSION = ".zip"

WORKER_BUNDLE_DIR = "worker-bundle"
DEFAULT_PACKAGE_NAME = "package"

# Process environment settings
MOUNT_ENABLED = "WEBSITE_MOUNT_ENABLED"
MOUNT_DISABLED = "WEBSITE_MOUNT_DISABLED"
RUN_FROM_PACKAGE = "WEBSITE_RUN_FROM_PACKAGE"
SCM_RUN_FROM_PACKAGE = "SCM_RUN_FROM_PACKAGE"
MSI_ENDPOINT = "MSI_ENDPOINT"

SIDECAR_SPECIALIZATION_PATH = "/api/specialize?api-version=2017-09-01"

# Latency event names
METRIC_SIDECAR_INIT = "specialization.sidecar_init"
METRIC_PACKAGE_HEAD = "specialization.package_head"
METRIC_PACKAGE_DOWNLOAD = "specialization.package_download"
METRIC_PACKAGE_WRITE = "specialization.package_write"
METRIC_ZIP_EXTRACT = "specialization.zip_extract"
METRIC_UNSQUASH = "specialization.unsquash"
METRIC_FUSE_MOUNT = "specialization.fuse_mount"
METRIC_FILE_COMMAND = "specialization.file_command"

FILE_COMMAND = "file -b {file_path}"
UNSQUASH_COMMAND = "unsquashfs -f -d {target_dir} {file_path}"
SQUASHFS_MOUNT_COMMAND = "squashfuse_ll {file_path} {target_dir}"
ZIP_MOUNT_COMMAND = "fuse-zip -r {file_path} {target_dir}"
FUSE_MOUNT_WRAPPER = (
    "(mknod /dev/fuse c 10 229 || true) && (mkdir -p {target_dir} || true) && ({mount_command})"
)
