"""Pipeline components: capture, segmentation, dispatch and chatbox output."""
