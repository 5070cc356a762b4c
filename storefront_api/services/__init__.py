# Services layer: CMS access and quote orchestration
